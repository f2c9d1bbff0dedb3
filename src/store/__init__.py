"""Storage layer.

This module persists loaded records and builds the AWS clients
that stage invocations use to reach external services.
"""
