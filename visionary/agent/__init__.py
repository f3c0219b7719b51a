"""Orchestration of remote image operations."""
