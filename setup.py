from setuptools import setup, find_packages

setup(
    name='deebn',
    version='0.1.0',
    description='Deep Belief Networks of Restricted Boltzmann Machines, '
                'refined into feed-forward networks, using Tensorflow.',
    packages=find_packages(exclude=['tests', 'tests.*']),
    zip_safe=False,
    include_package_data=True,
    platforms='any',
    license='MIT',
    python_requires='>=3.8',
    install_requires=[
        'numpy',
        'tensorflow>=2.4',
        'tqdm',
        'absl-py',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
