from setuptools import setup, find_packages

setup(
    name='edgectl',
    version='0.1.0',
    packages=find_packages(exclude=['*.tests', '*.tests.*']),
    include_package_data=True,
    install_requires=[
        'typer[all]',
        'paramiko',
        'kubernetes',
        'docker',
        'requests',
        'pyyaml',
        'pydantic>=2',
        'python-dotenv',
        'tenacity',
        'psutil',
        'jsonschema',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'edgectl=edgectl.cli:main'
        ]
    },
    author='Your Name',
    description='Bootstrap k3s clusters onto edge devices over SSH, with CI/CD and dashboard add-ons',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.8',
)
