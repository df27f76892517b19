"""Clinic notification fan-out and analytics API.

The package re-exports nothing; importing submodules explicitly keeps the
layers (domain, application, infrastructure, interfaces) decoupled.
"""
