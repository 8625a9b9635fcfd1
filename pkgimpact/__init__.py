"""
pkg-impact: transitive removal impact analysis for installed RPM packages.
"""

__version__ = "0.1.0"
