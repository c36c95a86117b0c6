"""
Test suite for bikecolors.

- Unit tests for models, services, the web layer and the CLI
- Integration tests for the submit/moderate/publish flow
"""
