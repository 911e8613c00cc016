from setuptools import setup, find_packages

def parse_requirements(requirements):
    with open(requirements) as f:
        return [l.strip('\n') for l in f if l.strip('\n') and not l.startswith('#')]

requirements = parse_requirements("requirements.txt")

setup(
    name='projectx_backend',
    version='0.1.0',
    install_requires=requirements,
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
            "httpx>=0.26",
        ],
    },
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    package_data={
        "projectx_backend": ["alembic/*.py", "alembic/*.mako", "alembic/versions/*.py"],
        "projectx_backend.exceptions": ["error_registry.yaml"],
    },
    include_package_data=True,
    entry_points={
        "console_scripts": [
            # "projectx=projectx_backend.cli:cli",
        ],
    }
)
