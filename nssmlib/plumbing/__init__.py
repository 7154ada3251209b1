"""
Low-level APIs for driving the service manager.

Each public function or method in this package should:

- perform a single action against the host or the manager
- raise an exception on any failures
- accept resolved values (manager paths, service names) rather than looking them up itself

Each one also falls into one of two groups:

- getters (returns a value directly, does not modify state)
- actions (returns a `Result` object, may modify state)
"""
