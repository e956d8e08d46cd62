"""Generative-text synthesis for Sitescribe."""

from .json_repair import RepairResult, parse_direct, parse_with_repair
from .llm import GenerationError, GenerativeClient
from .orchestrator import (
    ComprehensiveCorpus,
    FinalDocument,
    SynthesisError,
    SynthesisOrchestrator,
    SynthesisState,
    assemble_document,
    collect_citations,
    estimate_product_complexity,
)
from .pipeline import DocumentationPipeline, PipelineResult
from .stages import UNSET, ExtractedStructure, FinalMetadata, WrittenDocumentation, is_set
from .theme import extract_theme

__all__ = [
    'RepairResult',
    'parse_direct',
    'parse_with_repair',
    'GenerationError',
    'GenerativeClient',
    'ComprehensiveCorpus',
    'FinalDocument',
    'SynthesisError',
    'SynthesisOrchestrator',
    'SynthesisState',
    'assemble_document',
    'collect_citations',
    'estimate_product_complexity',
    'DocumentationPipeline',
    'PipelineResult',
    'UNSET',
    'ExtractedStructure',
    'FinalMetadata',
    'WrittenDocumentation',
    'is_set',
    'extract_theme',
]
