"""Retriever and answer generation over every uploaded document.

Handles:
- Query embedding generation
- Fan-out search across all namespaces
- Score ranking, thresholding and fallback
- Context assembly and answer generation
"""
import re
from dataclasses import dataclass, field
from typing import List, Dict, Any
import structlog

from docqa import config
from docqa.errors import MissingQuestionError
from docqa.rag.ingest import CHUNK_ID_SEPARATOR
from docqa.rag.store import Match, VectorStore

logger = structlog.get_logger()

NO_DOCUMENTS_ANSWER = (
    "No documents have been uploaded yet. Please upload a document first."
)
NO_RELEVANT_INFO_ANSWER = (
    "I couldn't find any relevant information in the uploaded documents "
    "to answer your question."
)
SUMMARY_INSTRUCTION = "Summarize the following content:"
SUMMARY_KEYWORDS = ("summary", "summarize", "overview", "main idea", "main points", "gist")
CONTEXT_SEPARATOR = "\n\n"

_SUMMARY_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(k) for k in SUMMARY_KEYWORDS) + r")\b",
    re.IGNORECASE,
)


@dataclass
class Source:
    """A retrieved chunk as returned to the caller."""

    file_name: str
    text: str
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {"fileName": self.file_name, "text": self.text, "score": self.score}


@dataclass
class QueryAnswer:
    answer: str
    sources: List[Source] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer": self.answer,
            "sources": [source.to_dict() for source in self.sources],
        }


def derive_file_name(vector_id: str) -> str:
    """Strip the trailing "-chunk-N" suffix from a vector id."""
    position = vector_id.rfind(CHUNK_ID_SEPARATOR)
    if position == -1:
        return vector_id
    return vector_id[:position]


def is_summary_request(question: str) -> bool:
    """Detect a request to summarize rather than to answer a question."""
    return bool(_SUMMARY_PATTERN.search(question))


def select_matches(
    matches: List[Match],
    score_threshold: float,
    fallback_top_n: int = 0,
    max_matches: int = None,
) -> List[Match]:
    """Rank matches and keep the relevant ones.

    Args:
        matches: Matches from any number of namespaces
        score_threshold: Minimum score (inclusive) to keep a match
        fallback_top_n: If nothing passes the threshold, keep this many of
            the best matches anyway (0 disables the fallback)
        max_matches: Upper bound on the number of matches kept

    Returns:
        Matches sorted by descending score
    """
    ranked = sorted(matches, key=lambda m: m.score, reverse=True)
    selected = [m for m in ranked if m.score >= score_threshold]

    if not selected and ranked and fallback_top_n > 0:
        selected = ranked[:fallback_top_n]
        logger.info(
            "score_threshold_fallback",
            threshold=score_threshold,
            best_score=ranked[0].score,
            kept=len(selected),
        )

    if max_matches:
        selected = selected[:max_matches]
    return selected


def build_context(matches: List[Match]) -> str:
    return CONTEXT_SEPARATOR.join(match.text for match in matches)


class Retriever:
    """Answers questions from the chunks of every uploaded document."""

    def __init__(
        self,
        embedder,
        generator,
        vector_store: VectorStore,
        top_k: int = None,
        score_threshold: float = None,
        fallback_top_n: int = None,
        max_matches: int = None,
    ):
        """Initialize the retriever.

        Args:
            embedder: Object with an async embed(text) -> List[float]
            generator: Object with an async generate(question, context) -> str
            vector_store: Vector store gateway
            top_k: Matches requested per namespace (default from config)
            score_threshold: Minimum cosine score (default from config)
            fallback_top_n: Matches kept when none pass the threshold (default from config)
            max_matches: Upper bound on matches used as context (default from config)
        """
        self.embedder = embedder
        self.generator = generator
        self.vector_store = vector_store
        self.top_k = top_k or config.RETRIEVAL_TOP_K
        self.score_threshold = (
            config.SCORE_THRESHOLD if score_threshold is None else score_threshold
        )
        self.fallback_top_n = (
            config.FALLBACK_TOP_N if fallback_top_n is None else fallback_top_n
        )
        self.max_matches = config.MAX_CONTEXT_MATCHES if max_matches is None else max_matches

        logger.info(
            "retriever_initialized",
            top_k=self.top_k,
            score_threshold=self.score_threshold,
            fallback_top_n=self.fallback_top_n,
            max_matches=self.max_matches,
        )

    async def search_all(self, query_embedding: List[float], namespaces: List[str]) -> List[Match]:
        """Query every namespace and concatenate the matches (unranked)."""
        matches: List[Match] = []
        for namespace in namespaces:
            matches.extend(
                await self.vector_store.query(namespace, query_embedding, self.top_k)
            )

        logger.info(
            "retrieval_completed",
            namespace_count=len(namespaces),
            results_found=len(matches),
        )
        return matches

    async def answer(self, question: str) -> QueryAnswer:
        """Answer a question from the uploaded documents.

        Raises:
            MissingQuestionError: If the question is missing or blank
            ProviderUnavailableError: If embedding or generation fails
            VectorStoreError: If the vector store fails
        """
        if not isinstance(question, str) or not question.strip():
            raise MissingQuestionError()
        question = question.strip()

        logger.info("query_started", question_preview=question[:100])

        query_embedding = await self.embedder.embed(question)
        namespaces = await self.vector_store.list_namespaces()

        if not namespaces:
            logger.info("no_namespaces_found")
            return QueryAnswer(answer=NO_DOCUMENTS_ANSWER)

        all_matches = await self.search_all(query_embedding, namespaces)
        relevant = select_matches(
            all_matches,
            score_threshold=self.score_threshold,
            fallback_top_n=self.fallback_top_n,
            max_matches=self.max_matches,
        )

        if not relevant:
            logger.info("no_relevant_matches", matches_found=len(all_matches))
            return QueryAnswer(answer=NO_RELEVANT_INFO_ANSWER)

        context = build_context(relevant)
        summary = is_summary_request(question)
        prompt_question = SUMMARY_INSTRUCTION if summary else question

        answer = await self.generator.generate(prompt_question, context)

        logger.info(
            "query_answered",
            namespace_count=len(namespaces),
            matches_found=len(all_matches),
            matches_used=len(relevant),
            top_score=relevant[0].score,
            summary=summary,
            context_length=len(context),
        )

        return QueryAnswer(
            answer=answer,
            sources=[
                Source(file_name=derive_file_name(m.id), text=m.text, score=m.score)
                for m in relevant
            ],
        )
