# setup.py
from setuptools import setup, find_packages

setup(
    name="pyinitramfs",
    version="0.1.0",
    description="Build initramfs cpio archives from an in-memory file tree",
    author="Enrique Paredes",
    author_email="eparedesbalen@gmail.com",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.8",
    install_requires=[
        "pyelftools",  # DT_NEEDED based dependency discovery
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'pyinitramfs=pyinitramfs.main:main',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX :: Linux",
    ],
)
