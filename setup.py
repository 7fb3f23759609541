from setuptools import setup, find_packages


setup(
    name='gstrack',
    version='1.0.0',
    packages=find_packages(where='src'),
    package_dir={'': 'src'},
    install_requires=[
        'colorama',
        'intervaltree',
        'pydantic>=2',
        'skyfield'
    ],
    extras_require={
        'docs': [
            'sphinx',
            'sphinx_rtd_theme'
        ],
        'test': [
            'pytest'
        ]
    },
    entry_points={
        'console_scripts': [
            'gstrack=gstrack.__main__:main'
        ]
    },
    description='Tracking job validation and lifecycle for satellite ground stations.',
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: MIT License',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.10',
)
