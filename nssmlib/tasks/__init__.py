"""
Higher-level methods to manage services.

Each public method in this package should:

- perform a complete task, as needed by a script or user action
- run its manager commands strictly in sequence, stopping at the first failure
- verify the service has settled where a final state is expected
"""
