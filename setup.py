#!/usr/bin/env python

"""Setup file and install script for the automated Illumina analysis pipeline"""

import os
import subprocess

import setuptools

VERSION = '0.9.0'

# add version number and git commit hash of the current revision to version.py
try:
    git_run = subprocess.run(['git', 'rev-parse', '--short', 'HEAD'], stdout=subprocess.PIPE,
                             stderr=subprocess.DEVNULL)
    git_run.check_returncode()
except (subprocess.SubprocessError, OSError):
    commit_hash = ''
else:
    commit_hash = git_run.stdout.strip().decode()

here = os.path.dirname(os.path.abspath(__file__))
with open(os.path.join(here, 'slxpipe', 'pipeline', 'version.py'), 'w') as version_file:
    version_file.writelines([f'__version__ = "{VERSION}"\n',
                             f'__git_revision__ = "{commit_hash}"\n'])

# external programs (bwa, CASAVA, Picard, LIMS scripts) are configured in
# slxpipe_system.yaml and installed separately on the cluster
setuptools.setup(name='slxpipe',
                 version=VERSION,
                 description='Automated analysis of Illumina flowcells on a batch cluster',
                 packages=setuptools.find_packages(exclude=['tests', 'tests.*']),
                 scripts=['scripts/slxpipe.py'],
                 python_requires='>=3.6',
                 install_requires=['biopython', 'logbook', 'PyYAML', 'toolz'],
                 extras_require={'test': ['pytest', 'pytest-mock', 'mock']})
