from setuptools import find_packages, setup

setup(
    name='senredis',
    version='1.0',
    author='CustomMade Ventures',
    author_email='sawdust@custommade.com',
    packages=find_packages(),
    license='LICENSE.txt',
    description='Sentinel Redis locator: consistent-hash sharding of keys over '
                'Sentinel-monitored masters with sentinel failover',
    long_description=open('README.txt').read(),
    python_requires='>=3.8',
    install_requires=[
        'Django >= 3.2',
        'redis >= 4.0'
    ],
    classifiers=[
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
        'Topic :: Software Development :: Libraries',
        'Topic :: Utilities',
        'Environment :: Web Environment',
        'Framework :: Django',
    ],
    zip_safe=False
)
