import io
import os
import sys
import unittest
from contextlib import redirect_stdout
from unittest.mock import patch

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from cli import backup_db, demo_data, generate, main, restore_db
from program_service import ProgramService


class CLITest(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_cli.db"
        self.yaml_path = "test_cli.yaml"
        self._cleanup()

    def tearDown(self) -> None:
        self._cleanup()

    def _cleanup(self) -> None:
        for path in (self.db_path, self.yaml_path, "test_cli_backup.db"):
            if os.path.exists(path):
                os.remove(path)

    def _run(self, *argv: str) -> str:
        out = io.StringIO()
        with patch.object(sys, "argv", ["hypertrophy-engine", *argv]), redirect_stdout(out):
            main()
        return out.getvalue()

    def test_demo_data_is_idempotent(self) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            uid = demo_data(self.db_path, self.yaml_path)
            again = demo_data(self.db_path, self.yaml_path)
        self.assertEqual(uid, again)
        self.assertIn(f"Demo user {uid} inserted", out.getvalue())
        self.assertIn("Database already contains users", out.getvalue())
        service = ProgramService(self.db_path, self.yaml_path)
        self.assertTrue(service.has_completed_onboarding(uid))

    def test_generate_and_today(self) -> None:
        with redirect_stdout(io.StringIO()):
            uid = demo_data(self.db_path, self.yaml_path)
        out = io.StringIO()
        with redirect_stdout(out):
            mid = generate(self.db_path, self.yaml_path, uid, 4, None)
        self.assertEqual(mid, 1)
        self.assertIn("Mesocycle 1: Upper/Lower", out.getvalue())

        text = self._run(
            "today", "--db", self.db_path, "--yaml", self.yaml_path,
            "--user", str(uid), "--date", "2026-10-19",
        )
        self.assertTrue(text.startswith("Upper"))
        self.assertIn(" kg (", text)
        text = self._run(
            "today", "--db", self.db_path, "--yaml", self.yaml_path,
            "--user", str(uid), "--date", "2026-10-21",
        )
        self.assertEqual(text.strip(), "Rest day")

    def test_weight_unit_setting(self) -> None:
        with redirect_stdout(io.StringIO()):
            uid = demo_data(self.db_path, self.yaml_path)
        ProgramService(self.db_path, self.yaml_path).settings.set_text("weight_unit", "lb")
        out = io.StringIO()
        with redirect_stdout(out):
            generate(self.db_path, self.yaml_path, uid, 3, 45)
        self.assertIn(" lb (", out.getvalue())
        self.assertNotIn(" kg (", out.getvalue())

    def test_injury_and_deload_commands(self) -> None:
        with redirect_stdout(io.StringIO()):
            uid = demo_data(self.db_path, self.yaml_path)
            generate(self.db_path, self.yaml_path, uid, None, None)
        text = self._run("injury", "--db", self.db_path, "--user", str(uid), "--muscle", "calves")
        self.assertEqual(text.strip(), "Injury 1 recorded")
        text = self._run("deload", "--db", self.db_path, "--yaml", self.yaml_path, "--mesocycle", "1")
        self.assertIn('"should_deload": false', text)

    def test_backup_restore(self) -> None:
        with redirect_stdout(io.StringIO()):
            demo_data(self.db_path, self.yaml_path)
        backup_db(self.db_path, "test_cli_backup.db")
        self.assertTrue(os.path.exists("test_cli_backup.db"))
        os.remove(self.db_path)
        restore_db("test_cli_backup.db", self.db_path)
        service = ProgramService(self.db_path, self.yaml_path)
        self.assertEqual(service.users.fetch_detail(1)["name"], "Demo Lifter")


if __name__ == "__main__":
    unittest.main()
