from rdflib import Namespace
from rdflib.namespace import OWL, RDF, RDFS, SH, XSD

CUBE = Namespace("https://cube.link/")
SCHEMA = Namespace("http://schema.org/")
# graph import vocabulary used by zazuko profile documents
CODE = Namespace("https://code.described.at/")

__all__ = ["CUBE", "SCHEMA", "CODE", "SH", "RDF", "RDFS", "OWL", "XSD"]
