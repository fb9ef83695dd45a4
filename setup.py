import os

import setuptools


PACKAGE_ROOT = os.path.abspath(os.path.dirname(__file__))
with open(os.path.join(PACKAGE_ROOT, 'README.rst')) as f:
    README = f.read()

with open(os.path.join(PACKAGE_ROOT, 'requirements.txt')) as f:
    REQUIREMENTS = [r.strip() for r in f.readlines() if r.strip()]


setuptools.setup(
    name='gcloud-aio-oauth2',
    version='1.0.0',
    description='OAuth 2.0 access tokens for Google Cloud from GCE metadata '
                'or service account key files',
    long_description=README,
    packages=setuptools.find_namespace_packages(include=('gcloud.*',)),
    python_requires='>= 3.8',
    install_requires=REQUIREMENTS,
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
            'pytest-cov',
        ],
    },
    author='TalkIQ',
    author_email='engineering@talkiq.com',
    url='https://github.com/talkiq/gcloud-aio',
    platforms='Posix; MacOS X; Windows',
    include_package_data=True,
    zip_safe=False,
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'Operating System :: OS Independent',
        'Programming Language :: Python :: 3',
        'Topic :: Internet',
    ],
)
