"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- PDF and plain-text extraction
- Document chunking with overlap
- Vector storage (Pinecone or FAISS), one namespace per upload
- Upload ingestion and multi-namespace retrieval
"""
