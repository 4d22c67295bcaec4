"""
Manifest-driven task graph engine for sequencing read QC and alignment.
"""

__version__ = '0.1.0'
