"""
Locust scenario user classes.

Each module in this package defines one Locust ``HttpUser`` subclass
that models a traffic pattern against the image API:

- :mod:`.breaking` -- random number images fetched back-to-back while the
  load shape ramps users up to find the breaking point

Concrete scenarios inherit from the abstract base class in :mod:`.base`,
which owns the request and the response checks.
"""
