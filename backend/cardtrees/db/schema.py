"""Database schema DDL. All tables use CREATE IF NOT EXISTS for idempotency."""

# parent_id and annotation node_id carry no foreign key: deleting a node leaves
# its children and annotations in place, and reads promote the orphans.
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS card_trees (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    scope_type TEXT NOT NULL CHECK (scope_type IN ('board', 'thread', 'post')),
    scope_id INTEGER NOT NULL,
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    created_by TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    is_primary INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_card_trees_scope ON card_trees(scope_type, scope_id);

CREATE TABLE IF NOT EXISTS card_tree_nodes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tree_id INTEGER NOT NULL,
    parent_id INTEGER,
    card_name TEXT NOT NULL,
    position INTEGER NOT NULL DEFAULT 0,
    created_by TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (tree_id) REFERENCES card_trees(id)
);

CREATE INDEX IF NOT EXISTS idx_card_tree_nodes_tree_id ON card_tree_nodes(tree_id);
CREATE INDEX IF NOT EXISTS idx_card_tree_nodes_parent_id ON card_tree_nodes(parent_id);

CREATE TABLE IF NOT EXISTS card_tree_annotations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    node_id INTEGER NOT NULL,
    kind TEXT NOT NULL DEFAULT 'note',
    body TEXT NOT NULL,
    label TEXT NOT NULL DEFAULT '',
    tags TEXT NOT NULL DEFAULT '',
    source_post_id INTEGER,
    created_by TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_card_tree_annotations_node_id ON card_tree_annotations(node_id);
CREATE INDEX IF NOT EXISTS idx_card_tree_annotations_kind ON card_tree_annotations(kind);
"""
