"""Service layer for the link redirector.

This package contains the resolution engine: the policy evaluator, the
interstitial ticket protocol, template resolution and visit recording.
Modules are imported directly (e.g. ``linkgate.services.policy``) so the
storage layer can depend on ``linkgate.services.exceptions`` without an
import cycle.
"""
