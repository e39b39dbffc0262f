"""
Storage layer: converters, schema, repositories and services.
"""
