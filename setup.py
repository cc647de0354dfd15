from setuptools import setup, find_packages

with open("requirements.txt") as f:
    requirements = f.read().splitlines()

setup(
    name="mcs_atom_mapper",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    zip_safe=False,
    install_requires=requirements,
    extras_require={"test": ["pytest"]},
    description="Reaction atom-atom mapping by concurrent maximum common subgraph search",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Development Status :: 2 - Pre-Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Chemistry",
    ],
    python_requires=">=3.9",
)
