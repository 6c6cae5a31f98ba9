"""Core domain package for automod.

Core contains rule parsing, exemption resolution, matching, and the
submission workflow without any Lemmy or storage-specific code, keeping the
business logic portable.
"""
