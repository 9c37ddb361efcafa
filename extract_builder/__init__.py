"""Eligibility extract builder service."""
