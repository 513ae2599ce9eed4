"""
Processing pipeline - ordered, event-scoped processors that can
transform, validate or reject files at each lifecycle point.
"""
