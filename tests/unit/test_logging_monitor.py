import logging

from pdm_xref.resolve.monitor import LoggingActivityMonitor
from pdm_xref.resolve.node import ReferenceNode
from pdm_xref.types import DocumentSourceLocation


def test_logging_monitor_reports_outcomes(caplog) -> None:
    monitor = LoggingActivityMonitor()
    root = ReferenceNode.root(DocumentSourceLocation("assembly.stp", "/cad", "URL"))
    child = ReferenceNode([DocumentSourceLocation("bracket.CATPart", "/cad", "URL")], parent=root)

    with caplog.at_level(logging.INFO, logger="pdm_xref"):
        monitor.identified([child], root)
        child.mark_foreign_reference()
        monitor.completed_loading(child)
        monitor.identified([], child)

    messages = [record.getMessage() for record in caplog.records]
    assert "assembly.stp references 1 external file(s): bracket.CATPart" in messages
    assert "bracket.CATPart: foreign_reference" in messages
    assert "bracket.CATPart references 0 external file(s): -" in messages
