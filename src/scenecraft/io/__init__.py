"""Project documents and mesh interchange at the edge of the editor core."""
