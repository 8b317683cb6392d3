"""
Tests for usage graph construction and the forwarding walk.
"""

import pytest

from react_annotation.analysis.annotation_extractor import AnnotationExtractor
from react_annotation.analysis.usage_graph import ReachResult, SlotState, UsageGraphBuilder
from react_annotation.core.cancellation import CancellationToken
from react_annotation.core.config import AnalysisConfig
from react_annotation.core.exceptions import AnalysisCancelled
from react_annotation.core.models import DiscrepancyKind, PathKind, TargetKind


@pytest.fixture
def trace(parse_unit):
    def _trace(source, **config_options):
        unit = parse_unit(source)
        config = AnalysisConfig(**config_options)
        arena = AnnotationExtractor(config).extract(unit).arena
        return arena, UsageGraphBuilder(config).build(unit, arena)

    return _trace


def _edges_by_label(graph, component_id):
    return {edge.target.label: edge for edge in graph.edges_from(component_id)}


def chain_source(length):
    """Leaf supplied by App to L1, each Li forwarding to Li+1, the last one rendering."""
    parts = [
        "interface SlotProps { content: React.ReactNode }",
        "/** @component */ function Leaf() { return <span />; }",
    ]
    for index in range(1, length):
        parts.append(
            f"/** @component */ function L{index}({{ content }}: SlotProps) "
            f"{{ return <L{index + 1} content={{content}} />; }}"
        )
    parts.append(
        f"/** @component */ function L{length}({{ content }}: SlotProps) "
        "{ return <div>{content}</div>; }"
    )
    parts.append("/** @component */ function App() { return <L1 content={<Leaf />} />; }")
    return "\n".join(parts)


class TestDirectEdges:
    def test_direct_instantiations(self, trace):
        arena, graph = trace(
            """
            /** @component */
            function Header() { return <h1>Title</h1>; }
            /** @component */
            function Page() {
              return (
                <main>
                  <Header />
                  <Header />
                  <Sidebar />
                </main>
              );
            }
            """
        )

        edges = _edges_by_label(graph, 1)
        assert set(edges) == {"<main>", "Header", "Sidebar"}
        assert edges["Header"].path.kind == PathKind.DIRECT
        assert edges["Header"].span.line == 8
        assert edges["Sidebar"].target.kind == TargetKind.UNRESOLVED
        assert graph.is_uncertain(1)
        assert not graph.is_uncertain(0)

    def test_conditionals_and_lists(self, trace):
        arena, graph = trace(
            """
            /** @component */ function Item() { return <li />; }
            /** @component */ function Empty() { return <p />; }
            /** @component */
            function List({ items }: { items: string[] }) {
              if (items.length === 0) {
                return <Empty />;
              }
              return <ul>{items.map((item) => <Item key={item} />)}</ul>;
            }
            """
        )

        assert {"Item", "Empty", "<ul>"} <= set(_edges_by_label(graph, 2))

    def test_no_components_no_edges(self, trace):
        arena, graph = trace("const App = () => <Header />;")

        assert graph.all_edges() == []
        assert graph.discrepancies == []


class TestForwarding:
    LAYOUT = """
        /** @component */ function Header() { return <h1 />; }
        interface LayoutProps { header: React.ReactNode; title: string }
        /** @component */
        function Layout({ header, title }: LayoutProps) {
          return <div title={title}>{header}</div>;
        }
    """

    def test_supplied_content_collapses_to_via_property(self, trace):
        arena, graph = trace(
            self.LAYOUT
            + """
            /** @component */
            function App() { return <Layout header={<Header />} title="home" />; }
            """
        )

        edges = _edges_by_label(graph, 2)
        assert edges["Header"].path.kind == PathKind.VIA_PROPERTY
        assert edges["Header"].path.depth == 1
        assert edges["Header"].slot == (1, "header")
        assert edges["Layout"].path.kind == PathKind.DIRECT
        assert graph.resolve_slot(1, "header").state == SlotState.RENDERED

    def test_multi_hop_forwarding(self, trace):
        arena, graph = trace(
            self.LAYOUT
            + """
            interface CardProps { top: React.ReactNode }
            /** @component */
            function Card(props: CardProps) { return <Layout header={props.top} title="card" />; }
            /** @component */
            function App() { return <Card top={<Header />} />; }
            """
        )

        header_edge = _edges_by_label(graph, 3)["Header"]
        assert header_edge.path == header_edge.path.via_property(2)
        assert header_edge.slot == (2, "top")
        assert graph.resolve_slot(2, "top").reached == [(2, "top"), (1, "header")]

    def test_direct_path_wins_over_forwarded(self, trace):
        arena, graph = trace(
            self.LAYOUT
            + """
            /** @component */
            function App() {
              return <Layout header={<Header />} title="x"><Header /></Layout>;
            }
            """
        )

        edges = [e for e in graph.edges_from(2) if e.target.label == "Header"]
        assert len(edges) == 1
        assert edges[0].path.kind == PathKind.DIRECT

    def test_dropped_slot(self, trace):
        arena, graph = trace(
            """
            interface ShellProps { header: ReactNode }
            /** @component */
            function Shell({ header }: ShellProps) { return <div />; }
            """
        )

        assert graph.resolve_slot(0, "header").state == SlotState.DROPPED

    def test_slot_handed_to_opaque_component(self, trace):
        arena, graph = trace(
            """
            interface ShellProps { header: ReactNode }
            /** @component */
            function Shell({ header }: ShellProps) { return <ThirdPartyBox top={header} />; }
            """
        )

        assert graph.resolve_slot(0, "header").state == SlotState.UNKNOWN

    def test_children_slot(self, trace):
        arena, graph = trace(
            """
            /** @component */ function Header() { return <h1 />; }
            /** @component */
            function Box({ children }: React.PropsWithChildren<{}>) { return <div>{children}</div>; }
            /** @component */
            function App() { return <Box><Header /></Box>; }
            """
        )

        header_edge = _edges_by_label(graph, 2)["Header"]
        assert header_edge.path.kind == PathKind.VIA_PROPERTY
        assert header_edge.slot == (1, "children")

    def test_class_component_this_props(self, trace):
        arena, graph = trace(
            """
            interface CardProps { header: React.ReactNode }
            /** @component */
            class Card extends React.Component<CardProps> {
              render() {
                return <div>{this.props.header}</div>;
              }
            }
            """
        )

        assert graph.resolve_slot(0, "header").state == SlotState.RENDERED


class TestDepthBound:
    def test_chain_within_bound(self, trace):
        arena, graph = trace(chain_source(8))

        app = arena.component_named("App")
        leaf = _edges_by_label(graph, app.id)["Leaf"]
        assert leaf.path.depth == 8
        assert graph.discrepancies == []

    def test_chain_exceeding_bound_reports_once(self, trace):
        arena, graph = trace(chain_source(9))

        app = arena.component_named("App")
        assert [d.kind for d in graph.discrepancies] == [DiscrepancyKind.CYCLE_DEPTH_EXCEEDED]
        assert graph.discrepancies[0].span.line == arena.components[app.id].span.line
        assert "Leaf" not in _edges_by_label(graph, app.id)

    def test_long_chain_reports_once(self, trace):
        arena, graph = trace(chain_source(12))

        app = arena.component_named("App")
        assert [d.kind for d in graph.discrepancies] == [DiscrepancyKind.CYCLE_DEPTH_EXCEEDED]
        assert graph.discrepancies[0].details["source"] == "App"
        assert graph.discrepancies[0].span.line == arena.components[app.id].span.line
        # Intermediate components still cannot be traced to the end of the chain
        assert graph.is_uncertain(arena.component_named("L1").id)

    def test_configurable_bound(self, trace):
        arena, graph = trace(chain_source(3), forwarding_depth_bound=2)

        assert [d.kind for d in graph.discrepancies] == [DiscrepancyKind.CYCLE_DEPTH_EXCEEDED]

    def test_cyclic_forwarding_terminates(self, trace):
        arena, graph = trace(
            """
            interface P { content: React.ReactNode }
            /** @component */ function A({ content }: P) { return <B content={content} />; }
            /** @component */ function B({ content }: P) { return <A content={content} />; }
            /** @component */ function App() { return <A content={<span />} />; }
            """
        )

        assert graph.resolve_slot(0, "content").state == SlotState.EXCEEDED
        assert [d.kind for d in graph.discrepancies] == [DiscrepancyKind.CYCLE_DEPTH_EXCEEDED]
        assert graph.discrepancies[0].details["source"] == "App"


class TestReachability:
    def test_reaches(self, trace):
        arena, graph = trace(
            """
            /** @component */ function Header() { return <h1 />; }
            /** @component */ function LargeHeader() { return <div><Header /></div>; }
            /** @component */ function Page() { return <LargeHeader />; }
            /** @component */ function Footer() { return <footer />; }
            /** @component */ function Vague() { return <Mystery />; }
            """
        )

        header_key = arena.components[0].id
        assert graph.reaches(2, ("component", header_key)) == ReachResult.REACHED
        assert graph.reaches(3, ("component", header_key)) == ReachResult.NOT_REACHED
        assert graph.reaches(4, ("component", header_key)) == ReachResult.INCOMPLETE


class TestCancellation:
    def test_cancelled_before_walk(self, parse_unit):
        unit = parse_unit("/** @component */ function Header() { return <h1 />; }")
        config = AnalysisConfig()
        arena = AnnotationExtractor(config).extract(unit).arena
        token = CancellationToken()
        token.cancel()

        with pytest.raises(AnalysisCancelled) as exc_info:
            UsageGraphBuilder(config).build(unit, arena, token)

        assert exc_info.value.file_path == "component.tsx"
