"""Extraction pipeline for U.S. House Periodic Transaction Reports."""
