from setuptools import setup


with open('README.rst', 'r') as f:
    # skip the banners
    lines = f.readlines()[6:]
    long_desc = ''.join(lines)

setup(
    name='pyumps',
    version='0.1.0',
    description='Uniform matrix product states and Grassmann gradient ground state search',
    long_description=long_desc,
    long_description_content_type='text/x-rst',
    license='BSD 2-Clause',
    packages=['pyumps'],
    install_requires=[
        'numpy>=1.17',
        'scipy>=1.12.0',
    ],
    extras_require={
        'test': ['pytest'],
        'experiments': ['matplotlib'],
    },
    python_requires='>=3.9'
)
