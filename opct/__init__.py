"""Provider validation workflow for OpenShift clusters: checks, setup, status, results and cleanup."""

__version__ = "0.5.1"