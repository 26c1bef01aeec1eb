"""awsclean - retention and cleanup policy engine for AWS build and deploy artifacts."""

__version__ = "0.3.0"
