import setuptools

install_deps = [
    "importlib-metadata",
    "numpy>=1.24.3",
    "numba>=0.57.0",
    "scipy>=1.9.0",
    "torch>=1.13.1",
    "tqdm",
]

test_deps = [
    "pytest",
]

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setuptools.setup(
    name="stackalign",
    version="0.1.0",
    description="Sub-pixel rigid alignment of imaging stacks by phase correlation",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=setuptools.find_packages(include=["stackalign", "stackalign.*"]),
    install_requires=install_deps,
    tests_require=test_deps,
    extras_require={
        "tests": test_deps,
    },
    include_package_data=True,
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Operating System :: OS Independent",
    ],
)
