"""
Rebuild the FAISS index from the configured clinical guidelines.
"""
import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from careagent.models.embeddings import EmbeddingModel
from careagent.retrieval.faiss_store import FAISSVectorStore
from careagent.utils.config_loader import load_config
from careagent.utils.logging_utils import setup_logging


def main():
    parser = argparse.ArgumentParser(description="Rebuild the guideline FAISS index")
    parser.add_argument("--config", default=None, help="Path to YAML config file")
    args = parser.parse_args()

    config = load_config(args.config)
    setup_logging(config.get('logging.level', 'INFO'))

    print("="*60)
    print("REBUILDING FAISS INDEX")
    print("="*60)

    guidelines_path = config.resolve_path('guidelines_path')
    if not guidelines_path.exists():
        print(f"\n[ERROR] Guidelines not found at {guidelines_path}")
        sys.exit(1)

    print("\n[1/3] Initializing embedding model...")
    embedding_config = config.get_model_config().get('embedding', {})
    embedding_model = EmbeddingModel(
        model_name=embedding_config.get('model_name'),
        device=embedding_config.get('device', 'auto')
    )

    print("\n[2/3] Building FAISS index from guidelines...")
    retrieval_config = config.get_retrieval_config()
    store = FAISSVectorStore(embedding_model)
    store.build_index_from_guidelines(
        str(guidelines_path),
        chunk_size=retrieval_config['chunk_size'],
        chunk_overlap=retrieval_config['chunk_overlap']
    )

    print("\n[3/3] Saving index to disk...")
    index_dir = config.resolve_path('index_dir')
    store.save_index(str(index_dir))

    print("\n" + "="*60)
    print("INDEX REBUILD COMPLETE!")
    print("="*60)
    print(f"Total documents: {len(store.documents)}")
    for key, value in embedding_model.describe().items():
        print(f"Embedding {key}: {value}")
    print(f"Index saved to: {index_dir}")


if __name__ == "__main__":
    main()
