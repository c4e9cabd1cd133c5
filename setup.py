
import glob
from setuptools import setup, find_packages
from asql import __version__

setup(
    name='asql',
    keywords='apache access log sql query shell',
    description='Query apache access logs with SQL',
    author='Ilkka Tuohela',
    author_email='hile@iki.fi',
    version=__version__,
    license='PSF',
    packages=find_packages(exclude=('test', 'test.*')),
    scripts=glob.glob('bin/*'),
    install_requires=(
        'configobj',
    ),
    tests_require=(
        'pytest',
        'pytest-datafiles',
    ),
    extras_require={
        'test': [
            'pytest',
            'pytest-datafiles',
        ],
    },
    classifiers=[
        'Environment :: Console',
        'Intended Audience :: Developers',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: Python Software Foundation License',
        'Operating System :: POSIX',
        'Operating System :: MacOS :: MacOS X',
        'Programming Language :: Python :: 3',
        'Topic :: Database',
        'Topic :: System :: Logging',
        'Topic :: System :: Systems Administration',
    ],
)
