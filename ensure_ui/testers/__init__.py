from .flow_parser import FlowParser, parse_flows
from .flow_tester import FlowTester
from .page_tester import PageTester
from .synthesizer import FLOW_MODE, PAGE_MODE, TestCodeSynthesizer

__all__ = ["FlowParser", "parse_flows", "FlowTester", "PageTester", "TestCodeSynthesizer", "PAGE_MODE", "FLOW_MODE"]
