"""
exceptions.py

Responsibility: Defines all custom exception classes used across the application.
Does NOT: contain business logic, logging, or HTTP handling.
"""

from __future__ import annotations


class DnsProviderError(Exception):
    """
    Raised by any DNSProvider implementation when a DNS API call fails.

    Includes a human-readable message describing the failure. The reconciler
    re-raises it as one of the more specific subclasses below so callers can
    tell which step of a reconcile pass failed.
    """


class ProviderFetchError(DnsProviderError):
    """
    Raised by DnsReconciler when the existing records for a name could not
    be listed from the provider.
    """


class TooManyPagesError(DnsProviderError):
    """
    Raised by DnsReconciler when record listing exceeds the page ceiling
    without the provider ever reporting a last page.
    """


class ProviderCreateError(DnsProviderError):
    """
    Raised by DnsReconciler when creating an A/AAAA record fails. Records
    created or deleted earlier in the same pass are left in place.
    """


class ProviderDeleteError(DnsProviderError):
    """
    Raised by DnsReconciler when deleting a stale record fails.
    """


class KubernetesError(Exception):
    """
    Raised by NodeWatcher when cluster credentials cannot be loaded or the
    Kubernetes API rejects a request.
    """


class ConfigLoadError(Exception):
    """
    Raised by load_settings when the environment does not describe a valid
    configuration (missing token or zone, unknown provider, bad numbers).
    """
