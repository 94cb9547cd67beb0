"""
cppcheckdata_mtag: memory tags for Cppcheck dump files.

Gives file-scope objects and the results of allocation calls a stable
63-bit *tag*, and follows tagged pointers into the functions they are
passed to, across translation units.

Modules
-------
  tag           context string → tag
  symbols       tags of file-scope variables and functions
  mtag          allocation-site tagging, address resolution, propagation
  ast_helper    expression rendering over Cppcheck ASTs
  hooks         callback registry
  state_store   per-variable states of one function walk
  summary_db    tag metadata, caller summaries, function-pointer links
  engine        dump traversal, hook dispatch, multi-pass session
  config        analysis settings
  cli           ``cppcheckdata-mtag`` command
"""

__version__ = "0.1.0"

from cppcheckdata_mtag.config import DEFAULT_ALLOC_FUNCTIONS, MtagConfig
from cppcheckdata_mtag.engine import AnalysisContext, AnalysisEngine, AnalysisSession, DumpUnit
from cppcheckdata_mtag.errors import ConfigError, HookRegistryError, MtagError, SummaryStoreError
from cppcheckdata_mtag.hooks import HookRegistry
from cppcheckdata_mtag.mtag import MemoryTagPass, allocation_context, resolve_tag
from cppcheckdata_mtag.state_store import StateStore
from cppcheckdata_mtag.summary_db import MEMORY_TAG, CallSite, SummaryStore
from cppcheckdata_mtag.symbols import toplevel_tag
from cppcheckdata_mtag.tag import MAX_TAG, TagState, derive_tag

__all__ = [
    "__version__",
    "DEFAULT_ALLOC_FUNCTIONS",
    "MtagConfig",
    "AnalysisContext",
    "AnalysisEngine",
    "AnalysisSession",
    "DumpUnit",
    "MtagError",
    "ConfigError",
    "SummaryStoreError",
    "HookRegistryError",
    "HookRegistry",
    "MemoryTagPass",
    "allocation_context",
    "resolve_tag",
    "StateStore",
    "MEMORY_TAG",
    "CallSite",
    "SummaryStore",
    "toplevel_tag",
    "MAX_TAG",
    "TagState",
    "derive_tag",
]
