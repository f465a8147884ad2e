"""
shapecam Module Tests

- test_processing.py: Frame normalization and tensor packing
- test_model.py: Inference engines and model registry
- test_inference.py: Invocation and result decoding
- test_pipeline.py: Per-frame pipeline, single-flight dispatch, end-to-end
- test_config.py: classifier.yaml and application settings
- test_app.py: Logging and the command line
"""
