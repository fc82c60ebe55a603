"""Cloud providers the tuner can drive."""

from .aws import AWSLambdaProvider

__all__ = ["AWSLambdaProvider"]
