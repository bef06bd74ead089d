"""Dialogue module."""

from .continuation import DialogContinuation, IDialogContinuation

__all__ = ["DialogContinuation", "IDialogContinuation"]
