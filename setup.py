from setuptools import setup, find_namespace_packages

setup(
    name='dd4hep_layer_builder',
    version='0.1',
    packages=find_namespace_packages(include=['dd4hep_layers', 'dd4hep_layers.*']),
    install_requires=[
        'numpy',
        'matplotlib',
    ],
    extras_require={
        'test': ['pytest'],
    },
    author='Dimitris Ntounis',
    author_email='dntounis@stanford.edu',
    description='Tracking layer builder for dd4hep detector descriptions',
    url='https://github.com/dntounis/dd4hep_hit_analysis_framework',
)
