"""Install repo-hygiene."""

import re

from setuptools import find_packages, setup


def is_requirement(line):
    """
    Return True if the requirement line is a package requirement.

    Returns:
        bool: True if the line is not blank, a comment,
        a URL, or an included file
    """
    return line and line.strip() and not line.startswith(('-r', '#', '-e', 'git+', '-c'))


def get_requirements(path):
    with open(path) as f:
        lines = f.readlines()
    return [line.strip() for line in lines if is_requirement(line)]


version = ''
with open('repo_hygiene/__init__.py', 'r') as fd:
    version = re.search(r'^__version__\s*=\s*[\'"]([^\'"]*)[\'"]',
                        fd.read(), re.MULTILINE).group(1)

if not version:
    raise RuntimeError('Cannot find version information')


setup(
    name="repo-hygiene",
    version=version,
    description="Automated housekeeping for GitHub repositories",
    long_description=open('README.rst').read(),
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={
        "repo_hygiene": ["default_config.yaml", "templates/*.j2"],
    },
    install_requires=get_requirements("requirements.txt"),
    extras_require={
        "test": get_requirements("requirements-test.txt"),
    },
    entry_points={
        "console_scripts": [
            "repo-hygiene = repo_hygiene.cli:main",
        ],
    },
    license='Apache 2.0',
    classifiers=(
        'License :: OSI Approved :: Apache Software License',
        'Environment :: Console',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3.12',
    ),
    python_requires=">=3.8",
    zip_safe=False,
)
