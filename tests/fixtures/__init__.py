"""Test doubles and canned GitHub data for the sync engine tests."""

from .fake_github import FakeGitHubClient

__all__ = ["FakeGitHubClient"]
