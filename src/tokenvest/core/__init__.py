"""
tokenvest core services: configuration, logging, metrics, access control,
asset transfers and the exception hierarchy.
"""
