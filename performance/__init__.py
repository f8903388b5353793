"""
Performance testing package (Locust-based).

Contains the Locust user class, the ramping load shape, and the
threshold machinery that together run the breaking-point load test
against the numbers-image API.

Requests go straight to the image API (port 8080 by default): one GET
of ``/api/images/numbers/{n}`` per iteration, ``n`` uniformly random in
``[0, 10000)``.

Key Concepts Demonstrated:
- Stage-driven user ramps through a Locust ``LoadTestShape``
- Named response checks recorded as data, not as fatal errors
- Threshold expressions evaluated against aggregated statistics, both
  during the run (abort on failure) and at the end (exit code)
- CSV-based threshold gates for automated pass/fail decisions
"""
