from setuptools import setup, find_packages

setup(
    name='refpack',
    version='0.1.0',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    python_requires='>=3.10',
    install_requires=[
        'requests',
        'pick',
        'PyYAML',
        'urllib3',
        'rich',
        'platformdirs',
    ],
    extras_require={
        'test': [
            'pytest<9.1',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'refpack=refpack.cli:main',
        ],
    },
    # Include other metadata as needed
)
