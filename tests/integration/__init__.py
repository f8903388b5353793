"""
API test package for the numbers-image service.

Tests use the Flask test client and demonstrate:
- Binary (PNG) response validation
- Server-side cache behaviour
- Health endpoint checks
"""
