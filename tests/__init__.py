"""
shapecam - Test Suite

Test modules are organized by package:
- tests/shapecam/: Tests for processing, model, inference, pipeline, config, app
"""
