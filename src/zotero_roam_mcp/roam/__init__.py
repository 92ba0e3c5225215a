"""Knowledge-graph side: refs, note templates, org-roam lookup, and resolution."""

from .refs import Ref, UriFormat, canonicalize, strip_scheme, ref_to_select_link
from .graph import KnowledgeGraph, Node, OrgRoamGraph, read_roam_refs
from .resolver import CitationResolver, Resolution
