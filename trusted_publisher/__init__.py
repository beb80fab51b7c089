"""
Trusted publisher configuration for RubyGems.org.

This package sets up the OIDC trust relationship between a gem on
RubyGems.org and the GitHub Actions workflow that releases it, so that
releases can be pushed without a long-lived API key.
"""

__version__ = "0.1.0"
