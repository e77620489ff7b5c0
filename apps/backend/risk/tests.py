from decimal import Decimal

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase

from asset.models import Asset
from core.models import Organization

from .models import AssetVulnerability, Vulnerability
from .scoring import (
    compliance_score,
    coverage,
    criticality,
    maturity_level,
    risk_level_for_score,
    risk_matrix,
    risk_rating,
    round_half_up,
)
from .services.assessor import assess, list_assessments, remove, risk_level_counts, risk_matrix_for


class CriticalityScoringTests(SimpleTestCase):
    def test_weighted_average_is_exact(self) -> None:
        result = criticality(5, 4, 3)

        self.assertEqual(result.decimal_score, Decimal("4.15"))
        self.assertEqual(result.level, "critical")

    def test_level_thresholds_are_inclusive(self) -> None:
        self.assertEqual(criticality(4, 4, 4).level, "critical")
        self.assertEqual(criticality(3, 3, 3).level, "high")
        self.assertEqual(criticality(2, 2, 2).level, "medium")
        self.assertEqual(criticality(1, 1, 1).level, "low")
        # 0.40*2 + 0.35*2 + 0.25*1 = 1.75
        self.assertEqual(criticality(2, 2, 1).level, "low")

    def test_score_is_monotonic_in_each_input(self) -> None:
        for base in range(1, 5):
            for position in range(3):
                lower = [3, 3, 3]
                higher = [3, 3, 3]
                lower[position] = base
                higher[position] = base + 1
                self.assertLess(criticality(*lower).score, criticality(*higher).score)

    def test_extremes(self) -> None:
        self.assertEqual(criticality(1, 1, 1).decimal_score, Decimal("1.00"))
        self.assertEqual(criticality(5, 5, 5).decimal_score, Decimal("5.00"))


class RiskRatingTests(SimpleTestCase):
    def test_full_grid_matches_band_table(self) -> None:
        for likelihood in range(1, 6):
            for impact in range(1, 6):
                rating = risk_rating(likelihood, impact)
                score = likelihood * impact
                self.assertEqual(rating.score, score)
                if score >= 20:
                    expected = "critical"
                elif score >= 12:
                    expected = "high"
                elif score >= 6:
                    expected = "medium"
                elif score >= 2:
                    expected = "low"
                else:
                    expected = "negligible"
                self.assertEqual(rating.level, expected, (likelihood, impact))

    def test_band_boundaries(self) -> None:
        self.assertEqual(risk_level_for_score(1), "negligible")
        self.assertEqual(risk_level_for_score(2), "low")
        self.assertEqual(risk_level_for_score(5), "low")
        self.assertEqual(risk_level_for_score(6), "medium")
        self.assertEqual(risk_level_for_score(11), "medium")
        self.assertEqual(risk_level_for_score(12), "high")
        self.assertEqual(risk_level_for_score(19), "high")
        self.assertEqual(risk_level_for_score(20), "critical")

    def test_matrix_orientation_and_counts(self) -> None:
        grid = risk_matrix([(5, 5), (5, 5), (1, 1), (2, 3)])

        self.assertEqual(len(grid), 5)
        self.assertTrue(all(len(row) == 5 for row in grid))
        self.assertEqual(grid[0][4], {"likelihood": 5, "impact": 5, "score": 25, "level": "critical", "count": 2})
        self.assertEqual(grid[4][0]["count"], 1)
        self.assertEqual(grid[2][1]["impact"], 3)
        self.assertEqual(grid[2][1]["likelihood"], 2)
        self.assertEqual(grid[2][1]["count"], 1)
        self.assertEqual(sum(cell["count"] for row in grid for cell in row), 4)


class ComplianceScoringTests(SimpleTestCase):
    def test_partial_counts_half(self) -> None:
        self.assertEqual(compliance_score(compliant=6, partial=2, not_applicable=1, total=10), 78)

    def test_unassessed_controls_drag_the_score(self) -> None:
        # 5 compliant, 1 partial, 2 not applicable, 2 never assessed.
        self.assertEqual(compliance_score(compliant=5, partial=1, not_applicable=2, total=10), 69)

    def test_nothing_applicable_scores_zero(self) -> None:
        self.assertEqual(compliance_score(compliant=0, partial=0, not_applicable=4, total=4), 0)
        self.assertEqual(compliance_score(compliant=0, partial=0, not_applicable=0, total=0), 0)

    def test_round_half_up(self) -> None:
        self.assertEqual(round_half_up(1, 2), 1)
        self.assertEqual(round_half_up(5, 2), 3)
        self.assertEqual(round_half_up(1, 3), 0)
        self.assertEqual(round_half_up(2, 3), 1)
        # 12.5% of controls compliant rounds up to 13.
        self.assertEqual(compliance_score(compliant=1, partial=0, not_applicable=0, total=8), 13)

    def test_coverage(self) -> None:
        self.assertEqual(coverage(9, 10), 90)
        self.assertEqual(coverage(0, 0), 0)

    def test_maturity_bands(self) -> None:
        self.assertEqual(maturity_level(0).label, "Initial")
        self.assertEqual(maturity_level(19).label, "Initial")
        self.assertEqual(maturity_level(20).label, "Developing")
        self.assertEqual(maturity_level(40).label, "Defined")
        self.assertEqual(maturity_level(63).label, "Managed")
        self.assertEqual(maturity_level(79).label, "Managed")
        self.assertEqual(maturity_level(80).label, "Optimizing")
        self.assertEqual(maturity_level(100).label, "Optimizing")


class AssetCriticalityPersistenceTests(TestCase):
    def setUp(self) -> None:
        self.organization = Organization.objects.create(name="Acme")

    def test_saved_asset_stores_derived_criticality(self) -> None:
        asset = Asset.objects.create(
            organization=self.organization,
            name="Customer DB",
            type=Asset.TYPE_DATA,
            confidentiality=5,
            integrity=4,
            availability=3,
        )
        asset.refresh_from_db()

        self.assertEqual(asset.criticality_score, Decimal("4.15"))
        self.assertEqual(asset.criticality, "critical")

    def test_update_fields_save_refreshes_criticality(self) -> None:
        asset = Asset.objects.create(organization=self.organization, name="Kiosk", type=Asset.TYPE_HARDWARE)
        asset.confidentiality = 1
        asset.integrity = 1
        asset.availability = 1
        asset.save(update_fields=["confidentiality", "integrity", "availability"])
        asset.refresh_from_db()

        self.assertEqual(asset.criticality, "low")
        self.assertEqual(asset.criticality_score, Decimal("1.00"))


class RiskAssessorTests(TestCase):
    def setUp(self) -> None:
        self.organization = Organization.objects.create(name="Acme")
        self.other_organization = Organization.objects.create(name="Globex")
        self.asset = Asset.objects.create(organization=self.organization, name="Web portal", type=Asset.TYPE_SOFTWARE)
        self.foreign_asset = Asset.objects.create(
            organization=self.other_organization,
            name="Globex portal",
            type=Asset.TYPE_SOFTWARE,
        )
        self.vulnerability = Vulnerability.objects.create(owasp_id="T-01", name="Injection")
        self.second_vulnerability = Vulnerability.objects.create(owasp_id="T-02", name="Broken Access Control")

    def test_assess_creates_then_replaces_the_pair(self) -> None:
        first, created = assess(
            organization_id=self.organization.id,
            asset_id=self.asset.id,
            vulnerability_id=self.vulnerability.id,
            likelihood=2,
            impact=2,
        )
        self.assertTrue(created)
        self.assertEqual((first.risk_score, first.risk_level), (4, "low"))

        second, created = assess(
            organization_id=self.organization.id,
            asset_id=self.asset.id,
            vulnerability_id=self.vulnerability.id,
            likelihood=5,
            impact=4,
            treatment_option=AssetVulnerability.TREATMENT_MITIGATE,
        )
        self.assertFalse(created)
        self.assertEqual(second.id, first.id)
        self.assertEqual(AssetVulnerability.objects.count(), 1)

        stored = AssetVulnerability.objects.get(id=first.id)
        self.assertEqual((stored.risk_score, stored.risk_level), (20, "critical"))
        self.assertEqual(stored.treatment_option, "mitigate")

    def test_out_of_range_ratings_are_rejected_before_writing(self) -> None:
        for likelihood, impact in ((0, 3), (3, 6), (6, 0), ("3", 3), (True, 2)):
            with self.assertRaises(ValidationError):
                assess(
                    organization_id=self.organization.id,
                    asset_id=self.asset.id,
                    vulnerability_id=self.vulnerability.id,
                    likelihood=likelihood,
                    impact=impact,
                )
        self.assertEqual(AssetVulnerability.objects.count(), 0)

    def test_validation_error_names_both_fields(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            assess(
                organization_id=self.organization.id,
                asset_id=self.asset.id,
                vulnerability_id=self.vulnerability.id,
                likelihood=0,
                impact=9,
            )
        self.assertEqual(set(ctx.exception.message_dict), {"likelihood", "impact"})

    def test_unknown_treatment_option_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            assess(
                organization_id=self.organization.id,
                asset_id=self.asset.id,
                vulnerability_id=self.vulnerability.id,
                likelihood=3,
                impact=3,
                treatment_option="ignore",
            )

    def test_foreign_asset_is_not_found(self) -> None:
        with self.assertRaises(ObjectDoesNotExist):
            assess(
                organization_id=self.organization.id,
                asset_id=self.foreign_asset.id,
                vulnerability_id=self.vulnerability.id,
                likelihood=3,
                impact=3,
            )
        self.assertEqual(AssetVulnerability.objects.count(), 0)

    def test_inactive_asset_and_vulnerability_are_not_found(self) -> None:
        self.asset.is_active = False
        self.asset.save(update_fields=["is_active"])
        with self.assertRaises(ObjectDoesNotExist):
            assess(
                organization_id=self.organization.id,
                asset_id=self.asset.id,
                vulnerability_id=self.vulnerability.id,
                likelihood=3,
                impact=3,
            )

        active_asset = Asset.objects.create(organization=self.organization, name="API", type=Asset.TYPE_SERVICE)
        self.vulnerability.is_active = False
        self.vulnerability.save(update_fields=["is_active"])
        with self.assertRaises(ObjectDoesNotExist):
            assess(
                organization_id=self.organization.id,
                asset_id=active_asset.id,
                vulnerability_id=self.vulnerability.id,
                likelihood=3,
                impact=3,
            )

    def test_remove_is_scoped_to_the_organization(self) -> None:
        assessment, _ = assess(
            organization_id=self.organization.id,
            asset_id=self.asset.id,
            vulnerability_id=self.vulnerability.id,
            likelihood=3,
            impact=3,
        )
        with self.assertRaises(ObjectDoesNotExist):
            remove(organization_id=self.other_organization.id, assessment_id=assessment.id)

        remove(organization_id=self.organization.id, assessment_id=assessment.id)
        self.assertFalse(AssetVulnerability.objects.exists())

    def test_listing_filters_and_aggregates(self) -> None:
        assess(
            organization_id=self.organization.id,
            asset_id=self.asset.id,
            vulnerability_id=self.vulnerability.id,
            likelihood=5,
            impact=5,
        )
        assess(
            organization_id=self.organization.id,
            asset_id=self.asset.id,
            vulnerability_id=self.second_vulnerability.id,
            likelihood=1,
            impact=3,
        )
        assess(
            organization_id=self.other_organization.id,
            asset_id=self.foreign_asset.id,
            vulnerability_id=self.vulnerability.id,
            likelihood=4,
            impact=4,
        )

        self.assertEqual(list_assessments(self.organization.id).count(), 2)
        self.assertEqual(list_assessments(self.organization.id, risk_level="critical").count(), 1)
        self.assertEqual(risk_level_counts(self.organization.id)["critical"], 1)
        self.assertEqual(risk_level_counts(self.organization.id)["low"], 1)
        self.assertEqual(risk_level_counts(self.organization.id)["high"], 0)

        grid = risk_matrix_for(self.organization.id)
        self.assertEqual(sum(cell["count"] for row in grid for cell in row), 2)
        self.assertEqual(grid[0][4]["count"], 1)

    def test_stored_rating_matches_recomputation(self) -> None:
        for likelihood in range(1, 6):
            assess(
                organization_id=self.organization.id,
                asset_id=self.asset.id,
                vulnerability_id=self.vulnerability.id,
                likelihood=likelihood,
                impact=6 - likelihood,
            )
            stored = AssetVulnerability.objects.get(asset=self.asset, vulnerability=self.vulnerability)
            expected = risk_rating(stored.likelihood, stored.impact)
            self.assertEqual((stored.risk_score, stored.risk_level), (expected.score, expected.level))


class SeedVulnerabilitiesCommandTests(TestCase):
    def test_seed_is_idempotent(self) -> None:
        call_command("seed_vulnerabilities")
        call_command("seed_vulnerabilities")

        self.assertEqual(Vulnerability.objects.count(), 10)
        self.assertTrue(Vulnerability.objects.filter(owasp_id="A03:2021", name="Injection").exists())
