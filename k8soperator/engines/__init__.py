"""
The ambient engines of the operator, which are not part of the event flow.
"""
