"""
Core logic for multi-variant image storage.

This module is framework-agnostic: it doesn't import FastAPI, boto3 or
Pillow. Storage and image processing are reached through protocols so
the orchestration can be tested in isolation.
"""
