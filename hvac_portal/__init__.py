"""
HVAC Portal

Authentication, session and authorization core for the HVAC services
administration portal.
"""

__version__ = "1.0.0"
