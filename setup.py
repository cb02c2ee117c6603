import os

from setuptools import setup, find_packages

version_file = os.path.join(os.path.dirname(__file__), "ebts_wsq", "version.py")
with open(version_file, "r") as f:
    exec(f.read())

readme_file = os.path.join(os.path.dirname(__file__), "README.md")
with open(readme_file, "r") as f:
    long_description = f.read()

setup(
    name="ebts_wsq",
    version=__version__,  # noqa: F821 -- loaded by 'exec' above
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    description="EBTS/NIST ITL transaction and FBI WSQ fingerprint image codecs.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="Apache-2.0",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Information Technology",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: POSIX :: Linux",
        "Operating System :: Microsoft :: Windows",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
        "Topic :: Multimedia :: Graphics :: Graphics Conversion",
    ],
    keywords="ebts nist itl wsq fingerprint biometrics",
    python_requires=">=3.6",
    install_requires=[
        "bitarray",
        "numpy",
        "pillow",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "ebts-print=ebts_wsq.scripts.ebts_print:main",
            "wsq-encode=ebts_wsq.scripts.wsq_convert:encode_main",
            "wsq-decode=ebts_wsq.scripts.wsq_convert:decode_main",
        ],
    },
)
