# setup.py

from setuptools import setup, find_packages

setup(
    name="cellpair",
    version="0.1",
    packages=find_packages(include=["cellpair", "cellpair.*"]),
    install_requires=[
        "numpy",
        "pandas",
        "tifffile",
        "pyyaml",
        "tqdm",
        "shapely>=2.0",
        "rasterio>=1.3",
        "google-cloud-storage>=2.0",
    ],
    python_requires=">=3.8",
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
    },
    description="Pair nucleus and whole-cell segmentation masks into cell objects",
)
