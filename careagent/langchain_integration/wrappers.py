"""
LangChain Wrappers for Existing Components

These wrappers expose the guideline retriever and the clinical tool registry
through LangChain interfaces WITHOUT changing their behavior, so they can be
dropped into LangChain chains or a LangGraph ReAct agent.
"""

from typing import Any, List

from langchain_core.callbacks import CallbackManagerForRetrieverRun
from langchain_core.documents import Document
from langchain_core.retrievers import BaseRetriever
from langchain_core.tools import StructuredTool
from pydantic import Field

from ..tools.registry import ToolRegistry


class GuidelineRetrieverWrapper(BaseRetriever):
    """
    LangChain wrapper for BM25Retriever, FAISSVectorStore or HybridRetriever.

    Anything whose ``search(query, top_k=...)`` yields tuples starting with
    (Document, score) works.
    """

    retriever: Any = Field(description="The underlying guideline retriever")
    top_k: int = Field(default=3, description="Number of excerpts to return")

    def __init__(self, retriever, top_k: int = 3, **kwargs):
        super().__init__(retriever=retriever, top_k=top_k, **kwargs)

    def _get_relevant_documents(
        self,
        query: str,
        *,
        run_manager: CallbackManagerForRetrieverRun
    ) -> List[Document]:
        documents = []
        for hit in self.retriever.search(query, top_k=self.top_k):
            doc, score = hit[0], hit[1]
            documents.append(
                Document(
                    page_content=doc.content,
                    metadata={
                        "guideline_id": doc.metadata.get("guideline_id", ""),
                        "title": doc.metadata.get("title", ""),
                        "category": doc.metadata.get("category", ""),
                        "chunk_index": doc.metadata.get("chunk_index", 0),
                        "score": float(score),
                    }
                )
            )
        return documents


def registry_to_langchain_tools(registry: ToolRegistry) -> List[StructuredTool]:
    """
    Wrap every registered tool as a LangChain StructuredTool.

    The wrapped callables are the registry's own functions, so results are
    identical to ``registry.execute`` on success.
    """
    return [
        StructuredTool.from_function(
            func=tool.function,
            name=tool.name,
            description=tool.description,
        )
        for tool in registry
    ]
