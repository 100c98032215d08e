"""Base controller classes."""

from kubecapture.controllers.base.base_controller import BaseController, EventResult

__all__ = ["BaseController", "EventResult"]
