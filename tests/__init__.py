"""
Unit tests package for the Camunda 8 on ECS Fargate CDK constructs.

This package contains unit tests for the option resolver, the security,
storage and topology builders, and every platform preset.
"""
