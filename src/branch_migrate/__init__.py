"""Branch Migration Tool

Moves GitHub repositories from one default branch to another: rewrites
workflow branch filters, reconciles GitHub Pages, retargets open pull
requests, switches the default branch and reports whether the old branch
can be deleted.
"""

__version__ = '0.1.0'
__author__ = 'Branch Migration Team'
__email__ = 'team@example.com'

from .cli.main import main

__all__ = ['main']
