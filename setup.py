from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="fusion_metrics",
    version="1.0.0",
    author="Riccardo Musto",
    description="Quality metrics (MSE, PSNR, ERGAS, Q) for image fusion and pan-sharpening evaluation",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=("tests", "tests.*")),
    py_modules=["main"],
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Image Processing",
    ],
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.19.0",
        "scipy>=1.5.0",
        "scikit-image>=0.17.0",
        "dask[distributed]>=2021.0.0",
        "pyyaml>=5.4.0",
    ],
    extras_require={
        "test": ["pytest>=6.0.0"],
    },
    entry_points={
        "console_scripts": [
            "fusion-metrics=main:main",
        ],
    },
)
