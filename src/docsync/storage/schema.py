"""Database schema for the docsync index."""

SCHEMA = """
-- Sync folders: one row per registered folder
CREATE TABLE IF NOT EXISTS sync_folders (
    id TEXT PRIMARY KEY,
    character_id TEXT NOT NULL,
    folder_path TEXT NOT NULL,
    display_name TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    file_count INTEGER NOT NULL DEFAULT 0,
    chunk_count INTEGER NOT NULL DEFAULT 0,
    last_synced_at TEXT,
    last_error TEXT,
    recursive INTEGER NOT NULL DEFAULT 1,
    include_extensions TEXT NOT NULL DEFAULT '[]',  -- JSON list
    exclude_patterns TEXT NOT NULL DEFAULT '[]',    -- JSON list
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (character_id, folder_path)
);

-- Sync files: one row per tracked file inside a folder
CREATE TABLE IF NOT EXISTS sync_files (
    folder_id TEXT NOT NULL,
    relative_path TEXT NOT NULL,
    file_path TEXT NOT NULL,
    content_hash TEXT,          -- NULL forces a reindex on the next cycle
    mtime REAL NOT NULL,
    size_bytes INTEGER NOT NULL,
    chunk_count INTEGER NOT NULL DEFAULT 0,
    last_indexed_at TEXT,
    error TEXT,
    PRIMARY KEY (folder_id, relative_path),
    FOREIGN KEY (folder_id) REFERENCES sync_folders(id) ON DELETE CASCADE
);

-- Vectors: one row per chunk
CREATE TABLE IF NOT EXISTS vectors (
    id TEXT PRIMARY KEY,
    character_id TEXT NOT NULL,
    folder_id TEXT NOT NULL,
    file_path TEXT NOT NULL,
    relative_path TEXT NOT NULL,
    chunk_index INTEGER NOT NULL,
    text TEXT NOT NULL,
    token_count INTEGER NOT NULL,
    start_line INTEGER,
    end_line INTEGER,
    token_offset INTEGER,
    embedding BLOB NOT NULL,    -- float32
    lexical TEXT NOT NULL,      -- sparse "bucket:weight" pairs
    indexed_at TEXT NOT NULL
);

-- Metadata table: stores index-wide settings such as the embedding model
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT
);

CREATE INDEX IF NOT EXISTS idx_sync_files_folder ON sync_files(folder_id);
CREATE INDEX IF NOT EXISTS idx_vectors_file ON vectors(folder_id, relative_path);
CREATE INDEX IF NOT EXISTS idx_vectors_character ON vectors(character_id);
"""
