"""
Shared configuration, logging and S3 helpers.
"""
