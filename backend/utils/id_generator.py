"""
Statement ID generator.

Statements are addressed by a random UUID4 string, e.g.
'df21cbf9-6ba2-460f-9c91-d28dbd4b2037'. IDs are never reused; a deleted
statement's ID stays dead.
"""
import uuid


def generate_statement_id() -> str:
    """Generate a new statement ID"""
    return str(uuid.uuid4())
