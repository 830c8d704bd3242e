"""asvstrack - OWASP ASVS Level 1 compliance tracker."""

__version__ = "0.1.0"
