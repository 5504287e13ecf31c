# Overview: Service-layer operations for document numbering; allocates unique invoice numbers.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db
from ..models import DocumentSequence

DOC_INVOICE = "INVOICE"
DOC_MERGED_INVOICE = "MERGED_INVOICE"

# document_type -> printed prefix ("INV-0001", "INV-M0001")
DOCUMENT_PREFIXES = {
    DOC_INVOICE: "INV-",
    DOC_MERGED_INVOICE: "INV-M",
}


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def next_document_number(*, document_type: str, session=None, pad: int = 4) -> str:
    """
    Allocate the next document number for a type.

    Runs inside the caller's transaction: the increment is a single UPDATE on
    the (document_type) row, so the row stays locked until the caller commits
    and a rolled back invoice gives its number back.
    """
    session = session if session is not None else db.session
    if not document_type:
        raise DocumentSequenceError("document_type is required")
    try:
        prefix = DOCUMENT_PREFIXES[document_type]
    except KeyError:
        raise DocumentSequenceError(f"Unknown document type: {document_type}")

    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = session.execute(stmt)
    if result.rowcount:
        current = (
            session.query(DocumentSequence.next_number)
            .filter_by(document_type=document_type)
            .scalar()
        )
        next_num = current - 1
    else:
        # First document of this type. A concurrent first insert fails on the
        # unique constraint and the enclosing run() surfaces the IntegrityError.
        session.add(DocumentSequence(document_type=document_type, next_number=2))
        session.flush()
        next_num = 1

    return f"{prefix}{next_num:0{pad}d}"

