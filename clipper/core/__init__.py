"""
Core plumbing shared by every clipper component: configuration,
logging, database access, errors and the remote fetch primitive.
"""
