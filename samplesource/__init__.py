"""Controller that reconciles SampleSource event sources on Kubernetes."""

__version__ = "0.1.0"
