"""
HTTP facade for the social interaction service.
"""
