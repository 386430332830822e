from setuptools import setup, find_packages

setup(
    name='pivol',
    version='0.0.1',
    author='pivol developers',
    description='Metadata-synchronised 2D data volumes for pattern-information analysis',
    packages=find_packages(exclude=['tests', 'tests.*', 'examples', 'examples.*']),
    install_requires=[
        'pyyaml',
        'numpy',
        'pandas',
        'scipy',
        'scikit-learn',
        'pydantic>=2',
    ],
    extras_require={
        'test': ['pytest'],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
    ],
    python_requires='>=3.9',
)
