"""
raireservice: assertion generation and retrieval for IRV risk-limiting audits
"""

import os


DISTNAME = "raireservice"
DESCRIPTION = "Generate, store and report RAIRE assertions for IRV risk-limiting audits"
AUTHOR = "raireservice developers"
AUTHOR_EMAIL = ""
URL = ""
LICENSE = "GNU Affero General Public License v3"
DOWNLOAD_URL = ""


def parse_requirements_file(filename):
    with open(filename, encoding="utf-8") as fid:
        requires = [l.strip() for l in fid.readlines() if l.strip()]

    return requires


here = os.path.dirname(os.path.abspath(__file__))

INSTALL_REQUIRES = parse_requirements_file(os.path.join(here, "requirements.txt"))
TESTS_REQUIRE = INSTALL_REQUIRES + ["pytest"]

with open(os.path.join(here, "raireservice", "__init__.py")) as fid:
    for line in fid:
        if line.startswith("__version__"):
            VERSION = line.strip().split()[-1][1:-1]
            break

with open(os.path.join(here, "README.md")) as fh:
    LONG_DESCRIPTION = fh.read()


if __name__ == "__main__":

    from setuptools import setup

    setup(
        name=DISTNAME,
        version=VERSION,
        license=LICENSE,
        description=DESCRIPTION,
        long_description=LONG_DESCRIPTION,
        long_description_content_type="text/markdown",
        author=AUTHOR,
        author_email=AUTHOR_EMAIL,
        url=URL,
        download_url=DOWNLOAD_URL,
        classifiers=[
            "Development Status :: 3 - Alpha",
            "Environment :: Console",
            "Intended Audience :: Developers",
            "Intended Audience :: Science/Research",
            "License :: OSI Approved :: GNU Affero General Public License v3",
            "Programming Language :: Python",
            "Programming Language :: Python :: 3.10",
            "Operating System :: Microsoft :: Windows",
            "Operating System :: POSIX",
            "Operating System :: Unix",
            "Operating System :: MacOS",
        ],
        install_requires=INSTALL_REQUIRES,
        tests_require=TESTS_REQUIRE,
        extras_require={"test": ["pytest"]},
        python_requires=">=3.10",
        packages=["raireservice", "raireservice.core", "raireservice.raire",
                  "raireservice.formats"],
        entry_points={
            "console_scripts": ["raire-service=raireservice.raire.run_raire:main"],
        },
    )
