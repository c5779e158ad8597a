"""Suspend, resume, reconcile and uninstall GitOps toolkit resources."""

__version__ = "0.1.0"