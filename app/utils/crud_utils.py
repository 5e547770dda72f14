from fastapi import HTTPException
from google.cloud.firestore import FieldFilter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

class CrudUtils:

    # ****************************************************
    #  Read Utils
    # ****************************************************

    @staticmethod
    def get_by_id(collection, doc_id: str, not_found: str = "Document not found...!") -> dict:
        doc = collection.document(doc_id).get()
        if not doc.exists:
            raise HTTPException(status_code=404, detail=not_found)

        data = doc.to_dict()
        data["id"] = doc.id
        return data

    @staticmethod
    def find_by_id(collection, doc_id: str) -> Optional[dict]:
        """Same as get_by_id but returns None for a missing document."""
        doc = collection.document(doc_id).get()
        if not doc.exists:
            return None
        return {**doc.to_dict(), "id": doc.id}

    @staticmethod
    def get_all(collection) -> List[dict]:
        return [{**doc.to_dict(), "id": doc.id} for doc in collection.stream()]

    @staticmethod
    def find_where(collection, field: str, value: Any, limit: Optional[int] = None) -> List[dict]:
        query = collection.where(filter=FieldFilter(field, "==", value))
        if limit:
            query = query.limit(limit)
        return [{**doc.to_dict(), "id": doc.id} for doc in query.stream()]

    # ****************************************************
    #  Write Utils
    # ****************************************************

    @staticmethod
    def create_record(collection, record: Dict[str, Any], doc_id: Optional[str] = None, exclusive: bool = False) -> dict:
        """
        Store ``record`` in a new document and return it with its id.
        ``createdAt`` is stamped unless the record already carries one.
        With ``exclusive`` the write fails with AlreadyExists instead of
        overwriting an existing ``doc_id``.
        """
        doc_ref = collection.document(doc_id) if doc_id else collection.document()
        data = {**record}
        data.setdefault("createdAt", datetime.now(timezone.utc))

        if exclusive:
            doc_ref.create(data)
        else:
            doc_ref.set(data)
        logger.info(f"Created document ID: {doc_ref.id}")
        return {**data, "id": doc_ref.id}

    @staticmethod
    def update_fields(collection, doc_id: str, fields: Dict[str, Any], not_found: str = "Document not found...!") -> dict:
        doc_ref = collection.document(doc_id)
        if not doc_ref.get().exists:
            raise HTTPException(status_code=404, detail=not_found)

        doc_ref.update(fields)
        logger.info(f"Updated document ID: {doc_id} fields {list(fields)}")
        return {**doc_ref.get().to_dict(), "id": doc_id}
