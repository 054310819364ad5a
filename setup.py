from setuptools import setup, find_packages

setup(
   name="ptrkit",
   version="0.1.0",
   description="Exclusive, shared and weak ownership handles over libc-allocated memory and other resources",
   python_requires=">=3.12",
   packages=find_packages(exclude=["tests", "tests.*"]),
   install_requires=[],
   extras_require={
      "test": [
         "pytest",
      ],
   },
)
