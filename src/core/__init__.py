"""Core domain package for crossrelay.

Core contains rule resolution, content transform, correlation and the relay
pipeline without any platform or storage-specific code, keeping the
business logic portable.
"""
