from setuptools import setup, find_namespace_packages

setup(
    name='wifi-sweep',
    version='0.1',
    packages=find_namespace_packages(include=['wifisweep', 'wifisweep.*']),
    install_requires=[
        'matplotlib',
        'numpy',
        'pandas',
        'simpy',
        'setuptools',
        'networkx',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': ['wifisweep=wifisweep.main:main'],
    },
    python_requires='>=3.10',)
