"""
Folding task results into the plan, and the final assembly pass that turns
the plan into the downloadable document bundle.
"""

import logging
from typing import Dict, Iterable, List, Optional

from .api_client import LLMRequest, ResilientClient
from .models import DOCUMENT_FILENAMES, UNIT_TO_DOCUMENT, DevelopmentPlan, TaskResult
from .prompts import DEFAULT_TEMPLATES, TemplateRegistry

logger = logging.getLogger(__name__)

ASSEMBLY_TEMPERATURE = 0.3

ASSEMBLY_SCHEMA = {
    "type": "object",
    "required": ["documents"],
    "properties": {"summary": {}, "documents": {}, "file_structure": {}},
}


class AssemblyError(RuntimeError):
    pass


def aggregate(plan: DevelopmentPlan, results: Iterable[TaskResult]) -> DevelopmentPlan:
    """Write each successful output into its document field (1:1 by unit)."""
    for result in results:
        if not result.success:
            continue
        doc = UNIT_TO_DOCUMENT[result.unit]
        if plan.get_document(doc) is not None:
            raise ValueError(f"Duplicate result for {result.unit}")
        plan.set_document(doc, result.output or "")
    return plan


def expected_files(plan: DevelopmentPlan, requested_documents: Iterable[str]) -> Dict[str, str]:
    """filename -> document type, for requested documents that have content."""
    files: Dict[str, str] = {}
    for doc in requested_documents:
        if doc in DOCUMENT_FILENAMES and plan.get_document(doc):
            files[DOCUMENT_FILENAMES[doc]] = doc
    return files


class Assembler:
    def __init__(self, client: ResilientClient, templates: Optional[TemplateRegistry] = None):
        self.client = client
        self.templates = templates or DEFAULT_TEMPLATES

    async def assemble(self, plan: DevelopmentPlan, requested_documents: List[str]) -> Dict[str, str]:
        """
        Ask the document generator for the final bundle and clamp its answer.

        Only filenames of requested documents with plan content survive;
        anything the model drops is filled in from the plan itself. Raises
        AssemblyError when nothing was generated or the call fails.
        """
        expected = expected_files(plan, requested_documents)
        if not expected:
            raise AssemblyError("No documents were generated; nothing to assemble")

        prompt = self.templates.build(
            "documentGenerator",
            {
                "PLAN_CONTEXT": plan.to_wire(),
                "REQUESTED_DOCUMENTS": ", ".join(requested_documents),
            },
        )

        try:
            data = await self.client.execute(
                LLMRequest(
                    prompt=prompt,
                    expect_json=True,
                    response_schema=ASSEMBLY_SCHEMA,
                    temperature=ASSEMBLY_TEMPERATURE,
                    source="DocumentGenerator",
                )
            )
        except Exception as e:
            raise AssemblyError(f"Final document assembly failed: {e}") from e

        documents = data.get("documents")
        if not isinstance(documents, dict):
            raise AssemblyError("Final document assembly failed: 'documents' is not an object")

        bundle: Dict[str, str] = {}
        for filename, content in documents.items():
            if filename not in expected:
                logger.warning("Dropping unexpected file from assembly: %s", filename)
                continue
            if not isinstance(content, str) or not content.strip():
                logger.warning("Dropping empty or non-text content for %s", filename)
                continue
            bundle[filename] = content

        for filename, doc in expected.items():
            if filename not in bundle:
                logger.info("Assembly omitted %s; using the generated document as-is", filename)
                bundle[filename] = plan.get_document(doc)

        return {filename: bundle[filename] for filename in expected}
