"""CLI integration tests.

This package drives the wiki-store Typer application with CliRunner against
a real configuration file and repository. Tests in this package verify:
- Configuration loading through the CLI
- Page, media and access rule commands end to end
- Exit codes and user feedback for conflicts and missing pages
"""
