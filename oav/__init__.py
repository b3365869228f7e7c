"""oav -- OpenAPI Validator.

Lints an OpenAPI spec, generates server and client code from it and
compiles the result, recording every tool run in a status ledger that is
rendered as an HTML dashboard.
"""

__version__ = "0.4.0"
