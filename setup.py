#!/usr/bin/env python

from setuptools import setup, find_packages

ver_dic = {}
version_file = open("flataff/version.py")
try:
    version_file_contents = version_file.read()
finally:
    version_file.close()

exec(compile(version_file_contents, "flataff/version.py", "exec"), ver_dic)


setup(name="flataff",
      version=ver_dic["VERSION_TEXT"],
      description="Integer constraint systems over affine expressions, "
          "with Fourier-Motzkin projection",
      long_description=open("README.rst").read(),
      classifiers=[
          "Development Status :: 4 - Beta",
          "Intended Audience :: Developers",
          "Intended Audience :: Science/Research",
          "License :: OSI Approved :: MIT License",
          "Natural Language :: English",
          "Programming Language :: Python",
          "Programming Language :: Python :: 3",
          "Topic :: Scientific/Engineering",
          "Topic :: Scientific/Engineering :: Mathematics",
          "Topic :: Software Development :: Compilers",
          "Topic :: Software Development :: Libraries",
          ],

      python_requires="~=3.10",
      install_requires=[
          "pytools>=2024.1.5",
          "pymbolic>=2024.2",
          "numpy>=1.19",
          "islpy>=2024.1",
          "colorama",
          "typing_extensions>=4.6",
          ],

      extras_require={
          "test": [
              "pytest>=7",
              ],
          },

      author="Andreas Kloeckner",
      author_email="inform@tiker.net",
      license="MIT",
      packages=find_packages(include=["flataff", "flataff.*"]),
      )
