"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,
    DatabaseError,

    # Pieces
    PieceNotFoundError,
    InvalidBarcodeError,
    PieceAlreadyProducedError,

    # Warehouses
    WarehouseNotFoundError,
    WarehouseOccupiedError,

    # Clients / volumes
    ClientNotFoundError,
    ProductionIncompleteError,
    VolumesExistError,
    VolumeNotFoundError,
    VolumeAlreadyLoadedError,
    PendingVolumesError,

    # Imports
    ImportSessionNotFoundError,
    ImportItemNotFoundError,
    ImportBlockedError,
    ImportCommitError,
    BatchCommitError,
    ImportFileError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    "DatabaseError",

    # Pieces
    "PieceNotFoundError",
    "InvalidBarcodeError",
    "PieceAlreadyProducedError",

    # Warehouses
    "WarehouseNotFoundError",
    "WarehouseOccupiedError",

    # Clients / volumes
    "ClientNotFoundError",
    "ProductionIncompleteError",
    "VolumesExistError",
    "VolumeNotFoundError",
    "VolumeAlreadyLoadedError",
    "PendingVolumesError",

    # Imports
    "ImportSessionNotFoundError",
    "ImportItemNotFoundError",
    "ImportBlockedError",
    "ImportCommitError",
    "BatchCommitError",
    "ImportFileError",
]
