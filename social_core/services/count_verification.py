"""
Consistency checks for the denormalized likes_count columns.
"""

from typing import Dict, List, Optional

from models.enums import AuditAction, TargetType
from models.models import CountMismatch
from repositories.likes_repo import LikesRepository
from services.audit import AuditRecorder
from utils.logger import get_logger

logger = get_logger(__name__)


class CountVerificationService:
    def __init__(self, likes_repo: Optional[LikesRepository] = None, audit: Optional[AuditRecorder] = None):
        self.likes_repo = likes_repo or LikesRepository()
        self.audit = audit or AuditRecorder()

    def verify_likes_count(self, target_type: TargetType, target_id: str) -> Optional[CountMismatch]:
        """Compare one stored counter with the live row count; None when they agree."""
        stored = self.likes_repo.stored_counts(target_type, [target_id]).get(str(target_id))
        if stored is None:
            return None
        actual = self.likes_repo.count_likes(target_type, target_id)
        if stored == actual:
            return None
        return CountMismatch(
            target_type=target_type,
            target_id=str(target_id),
            stored_count=stored,
            actual_count=actual,
        )

    def find_count_mismatches(self, target_type: TargetType) -> List[CountMismatch]:
        return self.likes_repo.find_count_mismatches(target_type)

    def fix_count_mismatches(self, target_type: TargetType) -> List[CountMismatch]:
        """Recompute every drifted counter of target_type. Returns what was found."""
        mismatches = self.find_count_mismatches(target_type)
        for mismatch in mismatches:
            fixed = self.likes_repo.recompute_count(target_type, mismatch.target_id)
            logger.warning(
                f"Fixed likes_count on {target_type.value} {mismatch.target_id}: "
                f"{mismatch.stored_count} -> {fixed}"
            )
            self.audit.record(
                AuditAction.LIKES_COUNT_FIX,
                None,
                f"{target_type.value}:{mismatch.target_id}",
                True,
                details={"stored": mismatch.stored_count, "actual": fixed},
            )
        return mismatches

    def verify_and_fix_counts(self) -> Dict[str, int]:
        """Run the fix over every likeable table; returns fixed counts per target type."""
        return {
            target_type.value: len(self.fix_count_mismatches(target_type))
            for target_type in TargetType
        }
