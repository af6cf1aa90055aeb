"""API Package.

FastAPI server exposing the AFD import triggers.
"""
