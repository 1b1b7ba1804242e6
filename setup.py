import etcutils.version
from setuptools import setup
import os


################################################################################
# Dynamic versioning


def get_version():
    # CI builds
    # If CI_VERSION_BUILD_NUMBER is set, append that to the base version
    build_num = os.getenv("CI_VERSION_BUILD_NUMBER")
    if build_num:
        return f"{etcutils.version.BASE_VERSION}.{build_num}"

    # Otherwise, use the auto-versioning
    return etcutils.version.__version__


################################################################################

setup(
    name="etcutils",
    version=get_version(),
    description="Read and safely rewrite passwd, group, shadow and gshadow",
    license="MIT",
    classifiers=[
        "Environment :: Console",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
        "Topic :: System :: Systems Administration",
    ],
    python_requires=">=3.8",
    install_requires=[
        "PyYAML",
        "argcomplete>=1.8.1",
        "pywin32; sys_platform == 'win32'",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
        "dev": [
            "black",
        ],
    },
    entry_points={
        "console_scripts": [
            "etcutils = etcutils.__main__:main",
        ],
    },
    packages=["etcutils"],
    zip_safe=False,  # http://stackoverflow.com/q/24642788/119527
)
