"""
Contract Parser

Lightweight, regex-based extraction of contract structure (version, contracts,
functions, modifiers, events, imports, pragmas, inheritance) for Solidity,
Vyper and Rust sources. This is metadata for report headers, not a parser
the analyzers depend on.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from chainguard.models import ContractMetadata
from chainguard.scope_resolver import line_number_of

logger = logging.getLogger(__name__)

SOLIDITY_VERSION = re.compile(r'pragma\s+solidity\s+[\^~>=<]*\s*([\d.]+)')
CONTRACT_DECLARATION = re.compile(r'\b(?:abstract\s+)?(?:contract|interface|library)\s+(\w+)(?:\s+is\s+([\w,\s]+?))?\s*\{')
SOLIDITY_FUNCTION = re.compile(
    r'function\s+(\w+)\s*\(([^)]*)\)\s*((?:public|private|internal|external)?)'
)
MODIFIER = re.compile(r'modifier\s+(\w+)')
EVENT = re.compile(r'event\s+(\w+)\s*\(')
STRUCT = re.compile(r'\bstruct\s+(\w+)')
IMPORT = re.compile(
    r'import\s+(?:"([^"]+)"|\'([^\']+)\'|\{[^}]+\}\s+from\s+(?:"([^"]+)"|\'([^\']+)\'))'
)
PRAGMA = re.compile(r'pragma\s+(\w+)\s+(.*?);')

VYPER_VERSION = re.compile(r'#\s*(?:@version|pragma\s+version)\s+[\^~>=<]*\s*([\d.]+)')
VYPER_FUNCTION = re.compile(r'@(?:external|internal|public|private)\s+(?:@\w+\s+)*def\s+(\w+)\s*\(')
VYPER_EVENT = re.compile(r'event\s+(\w+)\s*:')

RUST_MODULE = re.compile(r'\bmod\s+(\w+)')
RUST_FUNCTION = re.compile(r'(?:pub\s+)?fn\s+(\w+)\s*[<(]')
RUST_STRUCT = re.compile(r'(?:pub\s+)?struct\s+(\w+)')


@dataclass
class ParsedFunction:
    """Function signature as seen in the source"""
    name: str
    parameters: str = ""
    visibility: str = "public"
    line: int = 0


@dataclass
class ParsedContract:
    """Everything the parser could extract from one source text"""
    language: str
    version: str = "unknown"
    contracts: List[str] = field(default_factory=list)
    functions: List[ParsedFunction] = field(default_factory=list)
    modifiers: List[str] = field(default_factory=list)
    events: List[str] = field(default_factory=list)
    imports: List[str] = field(default_factory=list)
    pragmas: Dict[str, str] = field(default_factory=dict)
    inheritance: Dict[str, List[str]] = field(default_factory=dict)
    modules: List[str] = field(default_factory=list)
    structs: List[str] = field(default_factory=list)


def _functions(pattern: re.Pattern, source: str) -> List[ParsedFunction]:
    return [ParsedFunction(name=m.group(1), line=line_number_of(m.start(1), source))
            for m in pattern.finditer(source)]


def _parse_solidity(source: str) -> ParsedContract:
    parsed = ParsedContract(language="solidity")

    match = SOLIDITY_VERSION.search(source)
    if match:
        parsed.version = match.group(1)

    for match in CONTRACT_DECLARATION.finditer(source):
        parsed.contracts.append(match.group(1))
        if match.group(2):
            parsed.inheritance[match.group(1)] = [p.strip() for p in match.group(2).split(',') if p.strip()]

    for match in SOLIDITY_FUNCTION.finditer(source):
        parsed.functions.append(ParsedFunction(
            name=match.group(1),
            parameters=match.group(2).strip(),
            visibility=match.group(3) or "public",
            line=line_number_of(match.start(), source),
        ))

    parsed.modifiers = MODIFIER.findall(source)
    parsed.events = EVENT.findall(source)
    parsed.structs = STRUCT.findall(source)
    parsed.imports = [next(g for g in m.groups() if g) for m in IMPORT.finditer(source)]
    parsed.pragmas = {m.group(1): m.group(2).strip() for m in PRAGMA.finditer(source)}

    if not parsed.pragmas:
        logger.warning("No pragma statement found")
    if not parsed.contracts:
        logger.warning("No contract definition found")
    return parsed


def _parse_vyper(source: str) -> ParsedContract:
    parsed = ParsedContract(language="vyper")
    match = VYPER_VERSION.search(source)
    if match:
        parsed.version = match.group(1)
    parsed.functions = _functions(VYPER_FUNCTION, source)
    parsed.events = VYPER_EVENT.findall(source)
    return parsed


def _parse_rust(source: str) -> ParsedContract:
    parsed = ParsedContract(language="rust")
    parsed.modules = RUST_MODULE.findall(source)
    parsed.functions = _functions(RUST_FUNCTION, source)
    parsed.structs = RUST_STRUCT.findall(source)
    return parsed


PARSERS: Dict[str, Callable[[str], ParsedContract]] = {
    'solidity': _parse_solidity,
    'vyper': _parse_vyper,
    'rust': _parse_rust,
}


def parse_contract(source: str, language: str = "solidity") -> ParsedContract:
    """Parse ``source``; unknown languages fall back to the Solidity parser."""
    language = (language or "solidity").lower()
    parser = PARSERS.get(language)
    if parser is None:
        logger.warning(f"Unknown language '{language}', parsing as Solidity")
        parser = _parse_solidity
    parsed = parser(source or "")
    logger.debug(
        f"Parsed {parsed.language} source: {len(parsed.contracts)} contract(s), "
        f"{len(parsed.functions)} function(s)"
    )
    return parsed


def extract_metadata(source: str, language: str = "solidity",
                     name: Optional[str] = None) -> ContractMetadata:
    """Summarize ``source`` as the ContractMetadata shown in report headers."""
    parsed = parse_contract(source, language)
    # Rust programs are organised in modules rather than contracts.
    contracts = parsed.contracts or parsed.modules
    return ContractMetadata(
        language=parsed.language,
        version=parsed.version,
        contracts=tuple(contracts),
        functions=tuple(f.name for f in parsed.functions),
        modifiers=tuple(parsed.modifiers),
        events=tuple(parsed.events),
        imports=tuple(parsed.imports),
        inheritance={k: tuple(v) for k, v in parsed.inheritance.items()},
        pragmas=dict(parsed.pragmas),
        structs=tuple(parsed.structs),
        name=name or (contracts[-1] if contracts else None),
    )
