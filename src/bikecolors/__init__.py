"""
bikecolors - Crowdsourced gallery of bicycle photos tagged with colors

A small web application for collecting bicycle photographs:
- Public gallery of published photos served from Google Cloud Storage
- Anonymous photo submission with attribution and color metadata
- Operator moderation queue for approving or rejecting submissions
"""

__version__ = "0.1.0"
__author__ = "bikecolors"
__description__ = "Crowdsourced gallery of bicycle photos tagged with colors"
