"""
Clinical alert detection and contextual suppression for medical transcripts.
"""

__version__ = "1.0.0"
