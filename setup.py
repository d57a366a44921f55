from setuptools import setup, find_packages

setup(
    name="checkboxsketch",
    version="1.0.0",
    description="A tool to turn images and videos into checkbox sketches.",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "opencv-python",
        "Pillow",
        "numpy",
        "customtkinter",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'checkboxsketch=checkboxsketch.app:main',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    python_requires='>=3.8',
)
