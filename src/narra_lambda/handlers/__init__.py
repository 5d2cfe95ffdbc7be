"""Narra API endpoints.

Every concrete `ApiLambdaHandler` in this package is served by the application resolver
(`narra_lambda.app`) and also exposes a single-endpoint Lambda entry point.
"""
