"""
Test suite for the numbers-image load test.

This package contains:
- unit/: Scenario, threshold, metric and check logic without a server
- integration/: The image API through the Flask test client
- smoke/: Short Locust runs against a live image API
"""
