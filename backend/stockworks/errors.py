# Overview: Domain error taxonomy shared by services, routes and the CLI.

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for recoverable business-rule failures.

    Carries a machine-readable kind, a human-readable message and a details
    dict so callers can render the failure without parsing strings.
    """
    kind = "domain_error"
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "kind": self.kind,
            "details": self.details,
        }


class ValidationError(DomainError, ValueError):
    """400-level input problem (missing field, empty size, non-positive quantity)."""
    kind = "validation"
    status_code = 400


class NotFoundError(DomainError):
    kind = "not_found"
    status_code = 404


class InsufficientStockError(DomainError):
    """Product stock cannot cover a sale."""
    kind = "insufficient_stock"
    status_code = 409

    def __init__(self, product_name: str, available, requested):
        super().__init__(
            f"Only {available} units of {product_name} are available, "
            f"but {requested} units were requested",
            details={
                "product_name": product_name,
                "available": float(available),
                "requested": float(requested),
            },
        )


class InsufficientMaterialsError(DomainError):
    """One or more materials cannot cover a production run."""
    kind = "insufficient_materials"
    status_code = 409

    def __init__(self, shortages: list[dict]):
        names = ", ".join(s["material_name"] for s in shortages)
        super().__init__(
            f"Insufficient materials for production: {names}",
            details={"shortages": shortages},
        )


class ReferencedEntityError(DomainError):
    """Deletion blocked by existing foreign references."""
    kind = "referenced_entity"
    status_code = 409

    def __init__(self, message: str, relationship: str):
        super().__init__(message, details={"relationship": relationship})


class NegativeStockError(DomainError):
    """A reversal would drive stock below zero."""
    kind = "negative_stock"
    status_code = 409


class NoRecipeError(DomainError):
    """Production attempted for a product without a bill of materials."""
    kind = "no_recipe"
    status_code = 422
