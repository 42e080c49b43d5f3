"""Sequential execution of branch operations."""

from collections.abc import Callable, Iterable
from typing import Optional

from gitrake.errors import RakeError, UnsupportedOperation
from gitrake.git import GitGateway
from gitrake.log import get_logger
from gitrake.models import BranchOperation, OperationResult, OperationType
from gitrake.trash import TrashStore

logger = get_logger(__name__)

ErrorSink = Callable[[BranchOperation, Exception], None]


class BatchExecutor:
    """Run operations one after another, isolating failures per item.

    A failing operation is logged, reported to the error sink and recorded in
    the results; earlier operations are not rolled back and later ones still
    run. Snapshots taken before a batch are stale once it has run.
    """

    def __init__(self, gateway: GitGateway, trash: TrashStore) -> None:
        self.gateway = gateway
        self.trash = trash

    def apply(self, operation: BranchOperation) -> None:
        branch = operation.branch
        if operation.type is OperationType.TRASH:
            self.trash.move_to_trash(branch.name)
        elif operation.type is OperationType.RESTORE:
            self.trash.restore_from_trash(branch.name)
        elif operation.type is OperationType.PRUNE:
            self.gateway.prune_remote(branch.remote_name or "origin")
        else:
            raise UnsupportedOperation(f"Unknown operation type: {operation.type!r}")

    def run(
        self,
        operations: Iterable[BranchOperation],
        on_error: Optional[ErrorSink] = None,
    ) -> list[OperationResult]:
        results = []
        for operation in operations:
            try:
                self.apply(operation)
            except Exception as err:
                # Anything outside RakeError is unexpected, so keep its traceback
                logger.error(
                    "Failed to %s branch %s: %s",
                    getattr(operation.type, "value", operation.type),
                    operation.branch.name,
                    err,
                    exc_info=not isinstance(err, RakeError),
                )
                if on_error is not None:
                    on_error(operation, err)
                results.append(OperationResult(operation, error=err))
                continue
            results.append(OperationResult(operation))
        return results
