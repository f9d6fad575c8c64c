"""
Document numbering - sale numbers and batch numbers
"""
import logging
import secrets
import string
from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from retail_ledger.exceptions import ConcurrencyConflict
from retail_ledger.models import DocumentSequence

logger = logging.getLogger(__name__)

SALE = "SALE"
_BATCH_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


class DocumentService:
    """Sequential, per-organization document numbers"""

    @staticmethod
    def _lock_sequence(db: Session, organization_id: UUID, document_type: str, year: int) -> Optional[DocumentSequence]:
        return db.query(DocumentSequence).filter(
            DocumentSequence.organization_id == organization_id,
            DocumentSequence.document_type == document_type,
            DocumentSequence.year == year,
        ).with_for_update().first()

    @staticmethod
    def get_next_document_number(
        db: Session,
        organization_id: UUID,
        document_type: str,
        on_date: Optional[date] = None,
    ) -> str:
        """
        Take the next number for document_type in the current year.

        Format: {TYPE}-{YYYY}-{000001}. The sequence row is locked until the
        surrounding transaction ends, so numbers are gap-free per committed
        transaction and never shared.
        """
        year = (on_date or datetime.now(timezone.utc).date()).year
        seq = DocumentService._lock_sequence(db, organization_id, document_type, year)
        if seq is None:
            try:
                with db.begin_nested():
                    db.add(DocumentSequence(
                        organization_id=organization_id,
                        document_type=document_type,
                        prefix=document_type,
                        year=year,
                        current_number=0,
                    ))
            except IntegrityError:
                logger.info("Document sequence %s/%s created concurrently; retrying", document_type, year)
            seq = DocumentService._lock_sequence(db, organization_id, document_type, year)
            if seq is None:
                raise ConcurrencyConflict(f"Could not allocate {document_type} sequence for {year}")

        seq.current_number = (seq.current_number or 0) + 1
        db.flush()
        return f"{seq.prefix or document_type}-{year}-{seq.current_number:06d}"

    @staticmethod
    def get_sale_number(db: Session, organization_id: UUID, on_date: Optional[date] = None) -> str:
        return DocumentService.get_next_document_number(db, organization_id, SALE, on_date)

    @staticmethod
    def generate_batch_number(product_id: UUID, variant_id: UUID, on_date: Optional[date] = None) -> str:
        """BATCH-{product[:3]}-{variant[:3]}-{YYMMDD}-{4 random chars}"""
        day = on_date or datetime.now(timezone.utc).date()
        suffix = "".join(secrets.choice(_BATCH_SUFFIX_ALPHABET) for _ in range(4))
        return (
            f"BATCH-{str(product_id)[:3].upper()}-{str(variant_id)[:3].upper()}-"
            f"{day.strftime('%y%m%d')}-{suffix}"
        )
