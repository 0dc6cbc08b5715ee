#!/usr/bin/env python3
"""
File Deletion Operations Module

Provides the delete primitives used by every cleanup phase. Failures are
captured in an OperationResult instead of raised, so a single unreadable or
already vanished entry never aborts a batch.
"""

import os
import pathlib
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OperationType(Enum):
    """Type of file operation"""

    DELETE_FILE = "delete_file"
    REMOVE_DIRECTORY = "remove_directory"


@dataclass
class DeleteOperation:
    """Represents a planned deletion"""

    path: pathlib.Path
    operation_type: OperationType
    size: int = 0


@dataclass
class OperationResult:
    """Result of a file operation"""

    operation: DeleteOperation
    success: bool
    dry_run: bool = False
    error_message: Optional[str] = None

    @property
    def path(self) -> pathlib.Path:
        return self.operation.path


class FileOperations:
    """Deletion handler honoring dry-run mode"""

    def __init__(self, dry_run: bool = False):
        """Initialize with dry-run flag"""
        self.dry_run = dry_run

    def plan_delete(self, path: pathlib.Path) -> DeleteOperation:
        """Create a planned file deletion, recording the size it frees"""
        try:
            size = path.lstat().st_size
        except OSError:
            size = 0
        return DeleteOperation(path=path, operation_type=OperationType.DELETE_FILE, size=size)

    def plan_rmdir(self, path: pathlib.Path) -> DeleteOperation:
        """Create a planned empty-directory removal"""
        return DeleteOperation(path=path, operation_type=OperationType.REMOVE_DIRECTORY)

    def execute_operation(self, operation: DeleteOperation) -> OperationResult:
        """Execute a single deletion"""
        if self.dry_run:
            result = OperationResult(operation=operation, success=True, dry_run=True)
        else:
            try:
                if operation.operation_type == OperationType.DELETE_FILE:
                    operation.path.unlink()
                else:
                    # rmdir refuses non-empty directories, which is the emptiness re-check
                    os.rmdir(operation.path)
                result = OperationResult(operation=operation, success=True)
            except OSError as e:
                result = OperationResult(operation=operation, success=False, error_message=str(e))

        return result

    def execute_batch_operations(
        self, operations: list[DeleteOperation]
    ) -> tuple[list[OperationResult], list[OperationResult]]:
        """Execute multiple deletions and return success/failure lists"""
        successful_operations = []
        failed_operations = []

        for operation in operations:
            result = self.execute_operation(operation)
            if result.success:
                successful_operations.append(result)
            else:
                failed_operations.append(result)

        return successful_operations, failed_operations

    def delete_file(self, path: pathlib.Path) -> OperationResult:
        """Delete a single regular file"""
        return self.execute_operation(self.plan_delete(path))

    def remove_directory(self, path: pathlib.Path) -> OperationResult:
        """Remove a single empty directory"""
        return self.execute_operation(self.plan_rmdir(path))
