"""
Tests for graph diffing and discrepancy classification.
"""

from react_annotation.core.config import POLICY_SINGLE_HOP


def kinds(result):
    return [d.kind.value for d in result.discrepancies]


COMPONENTS = """
/** @component */ function Header() { return <h1 />; }
/** @component */ function Footer() { return <footer />; }
/** @component */ function LargeHeader() { return <div><Header /></div>; }
interface LayoutProps {
  /** @renders Header */
  header: React.ReactNode;
}
/** @component */
function Layout({ header }: LayoutProps) { return <div>{header}</div>; }
"""


class TestUndeclaredUsage:
    def test_reported_for_opted_in_component(self, analyze):
        result = analyze(
            COMPONENTS
            + """
            /**
             * @component
             * @renders Header
             */
            function Page() { return <main><Header /><Footer /></main>; }
            """
        )

        assert kinds(result) == ["UndeclaredUsage"]
        assert "Footer" in result.discrepancies[0].message
        assert result.discrepancies[0].details["path"] == "direct"

    def test_components_without_declarations_are_not_checked(self, analyze):
        result = analyze(COMPONENTS + "/** @component */ function Page() { return <Footer />; }")

        assert kinds(result) == []

    def test_wildcard_covers_everything(self, analyze):
        result = analyze(
            COMPONENTS
            + """
            /**
             * @component
             * @renders
             */
            function Page() { return <main><Header /><Footer /></main>; }
            """
        )

        assert kinds(result) == []

    def test_intrinsic_and_opaque_usage_never_reported(self, analyze):
        result = analyze(
            COMPONENTS
            + """
            /**
             * @component
             * @renders Header
             */
            function Page() { return <main><Header /><ThirdParty /></main>; }
            """
        )

        assert kinds(result) == []

    def test_content_for_declared_component_slot_is_covered(self, analyze):
        result = analyze(
            COMPONENTS
            + """
            /**
             * @component
             * @renders Layout
             */
            function Page() { return <Layout header={<Header />} />; }
            """
        )

        assert kinds(result) == []


class TestMissingDeclaration:
    def test_declared_but_never_rendered(self, analyze):
        result = analyze(
            COMPONENTS
            + """
            /**
             * @component
             * @renders Header
             * @renders Footer
             */
            function Page() { return <Header />; }
            """
        )

        assert kinds(result) == ["MissingDeclaration"]
        assert "Footer" in result.discrepancies[0].message

    def test_transitive_rendering_counts_as_observed(self, analyze):
        result = analyze(
            COMPONENTS
            + """
            /**
             * @component
             * @renders LargeHeader
             * @renders Header
             */
            function Page() { return <LargeHeader />; }
            """
        )

        assert kinds(result) == []

    def test_single_hop_requires_direct_observation(self, analyze):
        result = analyze(
            COMPONENTS
            + """
            /**
             * @component
             * @renders LargeHeader
             * @renders Header
             */
            function Page() { return <LargeHeader />; }
            """,
            forwarding_policy=POLICY_SINGLE_HOP,
        )

        assert kinds(result) == ["MissingDeclaration"]

    def test_property_declared_but_dropped(self, analyze):
        result = analyze(
            """
            /** @component */ function Header() { return <h1 />; }
            interface ShellProps {
              /** @renders Header */
              header: React.ReactNode;
            }
            /** @component */
            function Shell({ header }: ShellProps) { return <div />; }
            """
        )

        assert kinds(result) == ["MissingDeclaration"]
        assert result.discrepancies[0].details["property"] == "header"

    def test_forwarding_declaration_on_component(self, analyze):
        result = analyze(
            """
            interface ShellProps { header: React.ReactNode; footer: React.ReactNode }
            /**
             * @component
             * @renders header
             * @renders footer
             */
            function Shell({ header, footer }: ShellProps) { return <div>{header}</div>; }
            """
        )

        assert kinds(result) == ["MissingDeclaration"]
        assert "'footer'" in result.discrepancies[0].message


class TestSuppliedContent:
    def test_matching_supply(self, analyze):
        result = analyze(COMPONENTS + "/** @component */ function App() { return <Layout header={<Header />} />; }")

        assert kinds(result) == []

    def test_mismatched_supply(self, analyze):
        result = analyze(COMPONENTS + "/** @component */ function App() { return <Layout header={<Footer />} />; }")

        assert kinds(result) == ["MismatchedTarget"]
        details = result.discrepancies[0].details
        assert details["owner"] == "Layout"
        assert details["declared"] == "Header"
        assert details["actual"] == "Footer"

    def test_intrinsic_supply_mismatches(self, analyze):
        result = analyze(COMPONENTS + "/** @component */ function App() { return <Layout header={<h2 />} />; }")

        assert kinds(result) == ["MismatchedTarget"]

    def test_any_member_of_a_group_satisfies(self, analyze):
        result = analyze(
            COMPONENTS
            + """
            /** @component */
            function App() {
              return <Layout header={<><Footer /><Header /></>} />;
            }
            """
        )

        assert kinds(result) == []

    def test_opaque_supply_is_skipped(self, analyze):
        result = analyze(COMPONENTS + "/** @component */ function App() { return <Layout header={<Fancy />} />; }")

        assert kinds(result) == []

    def test_uncertain_chain_downgrades_to_unresolved(self, analyze):
        result = analyze(
            COMPONENTS
            + """
            /** @component */ function Vague() { return <Mystery />; }
            /** @component */ function App() { return <Layout header={<Vague />} />; }
            """
        )

        assert kinds(result) == ["UnresolvedTarget"]

    def test_tagged_slot_later_in_the_chain(self, analyze):
        result = analyze(
            COMPONENTS
            + """
            interface CardProps { top: React.ReactNode }
            /** @component */
            function Card({ top }: CardProps) { return <Layout header={top} />; }
            /** @component */ function App() { return <Card top={<Footer />} />; }
            """
        )

        assert kinds(result) == ["MismatchedTarget"]
        assert result.discrepancies[0].details["owner"] == "Layout"

    def test_re_exposure_is_consistent(self, analyze):
        result = analyze(
            COMPONENTS
            + """
            /**
             * @component
             * @renders Header
             */
            function BrandHeader() { return <Header />; }
            /** @component */ function App() { return <Layout header={<BrandHeader />} />; }
            """
        )

        assert kinds(result) == []
