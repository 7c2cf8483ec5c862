from setuptools import setup, find_packages

# Find all packages in the current directory
packages = find_packages(exclude=['tests', 'tests.*'])

setup(
    name='pluto-src',
    version='0.5.0',
    description='Build orchestration for compiling the vendored Pluto interpreter into static libraries',
    long_description=open('README.md', encoding='utf-8').read(),
    long_description_content_type='text/markdown',
    license='MIT',
    packages=packages,
    package_data={
        # Vendored C++ sources, when shipped inside the package
        'pluto_src': [
            'pluto/*.cpp',
            'pluto/*.hpp',
            'pluto/*.h',
            'pluto/vendor/Soup/soup/*',
            'pluto/vendor/Soup/Intrin/*',
        ]
    },
    include_package_data=True,
    # Requires >= Python 3.10
    python_requires='>=3.10',
    install_requires=[
        'setuptools>=61.0',
        'pybind11>=2.10',
    ],
    extras_require={
        'test': ['pytest>=7.0'],
    },
    entry_points={
        'console_scripts': [
            'pluto-build=pluto_src.__main__:main',
        ],
    },
    classifiers=[
        'Programming Language :: C++',
        'Topic :: Software Development :: Build Tools',
        'License :: OSI Approved :: MIT License',
    ],
    zip_safe=False,
)
