"""
The reactor groups the runtime of the operator: the watches, the queue,
the finalizers, and the operator itself that binds them together.
"""
