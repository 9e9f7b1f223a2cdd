from setuptools import setup, find_packages

setup(
    name='minipack',
    version='0.1.0',
    description='A small JavaScript module bundler',
    py_modules=['minipack'],
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={
        'bundler.runtime': ['*.js'],
    },
    python_requires='>=3.8',
    install_requires=[
        'lark>=1.1',
        'pydantic>=2.0',
    ],
    extras_require={
        'test': [
            'pytest',
            'mini-racer',
        ],
    },
    entry_points={
        'console_scripts': [
            'minipack = minipack:main',
        ],
    },
)
