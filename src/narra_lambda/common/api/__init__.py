"""API Gateway handler base class, request/response models, errors and resolver."""
