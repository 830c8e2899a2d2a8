from bson import DBRef
from mongoengine import Document, DateTimeField
from workboard.utils.timeutils import utcnow

class TimestampedDocument(Document):
    meta = {'abstract': True}

    created_at = DateTimeField(default=utcnow)
    updated_at = DateTimeField(default=utcnow)

    def clean(self):
        # Runs from validate(), so both save() and session writes stamp the row
        if not self.created_at:
            self.created_at = utcnow()
        self.updated_at = utcnow()

def ref_id(document, field_name: str):
    """Primary key behind a ReferenceField without loading the referenced document."""
    value = document._data.get(field_name)
    # Loaded Document, DBRef or the raw pk
    return getattr(value, 'id', value)

def as_ref(model, pk):
    """Value for a ReferenceField when only the primary key is at hand."""
    if pk is None:
        return None
    return DBRef(model._get_collection_name(), pk)
