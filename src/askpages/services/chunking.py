"""Text chunking service using LangChain RecursiveCharacterTextSplitter."""

from dataclasses import dataclass

from langchain_text_splitters import RecursiveCharacterTextSplitter

from askpages.config import settings

# Paragraph, line, sentence, word, then raw character
SEPARATORS = ["\n\n", "\n", ". ", " ", ""]


@dataclass
class ChunkData:
    """Intermediate representation of a chunk before it is embedded."""

    chunk_index: int
    content: str
    chunk_start: int

    @property
    def chunk_length(self) -> int:
        return len(self.content)


class ChunkingService:
    """Split page text into overlapping, bounded-size chunks."""

    def __init__(
        self,
        chunk_size: int | None = None,
        chunk_overlap: int | None = None,
    ) -> None:
        self.chunk_size = chunk_size or settings.chunk_size
        self.chunk_overlap = chunk_overlap or settings.chunk_overlap
        self.splitter = RecursiveCharacterTextSplitter(
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
            length_function=len,
            separators=SEPARATORS,
        )

    def split_text(self, text: str | None) -> list[str]:
        """Split text into chunk strings. Blank input yields an empty list."""
        if not text or not text.strip():
            return []
        return self.splitter.split_text(text)

    def chunk_text(self, text: str | None) -> list[ChunkData]:
        """
        Split text into chunks and locate each one in the source.

        Args:
            text: Raw page text

        Returns:
            List of ChunkData with contiguous indices and character offsets
        """
        raw_chunks = self.split_text(text)

        chunks: list[ChunkData] = []
        search_start = 0
        previous_start = -1

        for chunk_index, chunk_text in enumerate(raw_chunks):
            chunk_start = text.find(chunk_text, search_start)
            if chunk_start == -1:
                chunk_start = text.find(chunk_text, previous_start + 1)
            if chunk_start == -1:
                chunk_start = text.find(chunk_text)
            chunk_start = max(chunk_start, 0)

            chunks.append(
                ChunkData(
                    chunk_index=chunk_index,
                    content=chunk_text,
                    chunk_start=chunk_start,
                )
            )

            # Consecutive chunks share at most chunk_overlap characters
            previous_start = chunk_start
            search_start = max(
                chunk_start + 1, chunk_start + len(chunk_text) - self.chunk_overlap
            )

        return chunks
