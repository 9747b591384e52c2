from setuptools import setup, find_packages

setup(
    name='sigrange',
    version='0.1',
    description='Ground-station RF chain and spectrum analyzer simulation',
    packages=find_packages(exclude=('tests', 'tests.*')),
    python_requires='>=3.9',
    install_requires=[
        'numpy',
        'scipy',
        'astropy',
        'pycraf',
        'matplotlib',
    ],
    extras_require={
        'test': ['pytest'],
    },
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
    ],
)
