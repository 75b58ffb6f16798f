import pytest

from aws_provisioner.engine.errors import DependencyCycleError
from aws_provisioner.engine.graph import DependencyGraph

APP = "aws_codedeploy_app.web"
CONFIG = "aws_codedeploy_deployment_config.half"
GROUP = "aws_codedeploy_deployment_group.blue"
ORIGIN = "aws_cloudfront_vpc_origin.web"


def test_topological_order_is_lexicographic_without_priorities() -> None:
    graph = DependencyGraph(nodes=[GROUP, ORIGIN, APP], dependencies={GROUP: [APP]})
    assert graph.topological_order() == [ORIGIN, APP, GROUP]


def test_dependencies_outside_the_graph_are_ignored() -> None:
    graph = DependencyGraph(nodes=[GROUP], dependencies={GROUP: [APP]})
    assert graph.topological_order() == [GROUP]


def test_cycle_detection_names_the_nodes() -> None:
    graph = DependencyGraph(nodes=[APP, GROUP], dependencies={APP: [GROUP], GROUP: [APP]})
    with pytest.raises(DependencyCycleError) as exc_info:
        graph.topological_order()
    assert set(exc_info.value.addresses) == {APP, GROUP}


def test_priorities_order_unconstrained_nodes() -> None:
    graph = DependencyGraph(
        nodes=[ORIGIN, GROUP, CONFIG, APP],
        dependencies={},
        priorities={APP: 10, CONFIG: 20, GROUP: 30, ORIGIN: 100},
    )
    assert graph.topological_order() == [APP, CONFIG, GROUP, ORIGIN]


def test_priorities_never_override_dependencies() -> None:
    graph = DependencyGraph(
        nodes=[APP, ORIGIN],
        dependencies={APP: [ORIGIN]},
        priorities={APP: 10, ORIGIN: 100},
    )
    assert graph.topological_order() == [ORIGIN, APP]


def test_reverse_order_deletes_dependents_first() -> None:
    graph = DependencyGraph(
        nodes=[APP, CONFIG, GROUP],
        dependencies={GROUP: [APP, CONFIG]},
        priorities={APP: 10, CONFIG: 20, GROUP: 30},
    )
    assert graph.reverse_topological_order()[0] == GROUP
