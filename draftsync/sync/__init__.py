"""Reconciliation of remote mailbox state into local storage."""

from draftsync.sync.reconciler import Reconciler

__all__ = ["Reconciler"]
