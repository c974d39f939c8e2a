from setuptools import setup, find_packages

setup(
    name="smpregistry",
    version="1.0.0",
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={
        'smpregistry.cli': ['templates/*.yaml'],
    },
    install_requires=[
        'requests>=2.25.0',   # Locator service SOAP calls
        'pyyaml>=5.4',        # YAML configuration files
        'pandas>=1.5.0',      # Participant export
        'tqdm>=4.60.0',       # Progress bars (backend migration)
    ],
    extras_require={
        'cli': [
            'questionary>=2.0.0',               # Interactive CLI prompts
        ],
        'dev': [                                # Development tools
            'pytest>=7.0.0',
            'pytest-mock>=3.6.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'smpregistry=smpregistry.cli.main:main',
        ],
    },
    python_requires='>=3.8',
)
