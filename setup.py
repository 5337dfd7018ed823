from setuptools import setup, find_packages

setup(
    name='binforest',
    version='1.0',
    packages=find_packages(exclude=['tests', 'experiments']),
    py_modules=['accumulators', 'config', 'errors', 'parallel', 'random_forest', 'split_tests'],
    install_requires=['numpy', 'joblib'],
    extras_require={'test': ['pytest']},
    description='Inference engine for forests of binary decision trees',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
)
