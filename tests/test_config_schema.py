import tempfile
import unittest
from pathlib import Path
from unittest import mock

import yaml
from pydantic import ValidationError

from bodyosc.core.constants import JointType
from bodyosc.core.osc import OscBundleSink
from bodyosc.models.config import AppConfig, ConfigurationError, OscConfig
from bodyosc.services.config_store import ConfigStore
from bodyosc.services.runtime import build_runtime


class ConfigSchemaTests(unittest.TestCase):
    def test_defaults_load(self):
        cfg = AppConfig()
        self.assertEqual(cfg.osc.host, "127.0.0.1")
        self.assertEqual(cfg.osc.port, 9875)
        self.assertEqual(cfg.osc.joints, ["HandRight", "HandLeft", "AnkleRight", "AnkleLeft"])
        self.assertAlmostEqual(cfg.runtime.z_floor, 0.1)
        self.assertEqual(cfg.runtime.body_slot_count, 6)
        self.assertTrue(cfg.runtime.send_untracked_joints)
        self.assertEqual(cfg.logging.level, "INFO")

    def test_required_joints_always_lead(self):
        cfg = OscConfig(joints=["Head", "HandLeft", "Head", "SpineMid"])
        self.assertEqual(
            cfg.joints,
            ["HandRight", "HandLeft", "AnkleRight", "AnkleLeft", "Head", "SpineMid"],
        )
        self.assertEqual(cfg.joint_types()[-1], JointType.SpineMid)

    def test_invalid_values_rejected(self):
        with self.assertRaises(ValidationError):
            OscConfig(port=0)
        with self.assertRaises(ValidationError):
            OscConfig(port=70000)
        with self.assertRaises(ValidationError):
            OscConfig(host="  ")
        with self.assertRaises(ValidationError):
            OscConfig(joints=["Tail"])
        with self.assertRaises(ValidationError):
            AppConfig.model_validate({"runtime": {"z_floor": 0.0}})
        with self.assertRaises(ValidationError):
            AppConfig.model_validate({"runtime": {"body_slot_count": 7}})
        with self.assertRaises(ValidationError):
            AppConfig.model_validate({"logging": {"level": "LOUD"}})


class ConfigStoreTests(unittest.TestCase):
    def test_missing_file_written_with_defaults(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "configs" / "default.yaml"
            store = ConfigStore(path)
            self.assertTrue(path.exists())
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
            self.assertEqual(payload["osc"]["port"], store.config.osc.port)

    def test_yaml_overrides(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cfg.yaml"
            path.write_text("osc:\n  port: 7000\n  joints: [Neck]\n", encoding="utf-8")
            cfg = ConfigStore(path).config
            self.assertEqual(cfg.osc.port, 7000)
            self.assertEqual(cfg.osc.joints[-1], "Neck")

    def test_bad_port_is_configuration_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cfg.yaml"
            path.write_text("osc:\n  port: -1\n", encoding="utf-8")
            with self.assertRaises(ConfigurationError):
                ConfigStore(path)

    def test_broken_yaml_is_configuration_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cfg.yaml"
            path.write_text("osc: [unclosed\n", encoding="utf-8")
            with self.assertRaises(ConfigurationError):
                ConfigStore(path)

    def test_runtime_refuses_unresolvable_destination(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cfg.yaml"
            path.write_text("osc:\n  host: no-such-host.invalid\n", encoding="utf-8")
            with self.assertRaises(ConfigurationError):
                build_runtime(path)

    def test_runtime_wires_session(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cfg.yaml"
            path.write_text("logging:\n  log_joints: false\n", encoding="utf-8")
            runtime = build_runtime(path)
            try:
                self.assertIs(runtime.session_manager.sink, runtime.sink)
                self.assertIsNone(runtime.joint_logger)
                self.assertEqual(runtime.sink.addr, ("127.0.0.1", 9875))
            finally:
                runtime.session_manager.stop()
            self.assertTrue(runtime.sink.closed)

    def test_unwritable_joint_log_is_configuration_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "not-a-dir"
            blocker.write_text("", encoding="utf-8")
            path = Path(tmp) / "cfg.yaml"
            path.write_text(
                f"logging:\n  joint_log_path: {(blocker / 'joints.log').as_posix()}\n",
                encoding="utf-8",
            )
            with mock.patch.object(OscBundleSink, "close", autospec=True) as close:
                with self.assertRaises(ConfigurationError):
                    build_runtime(path)
            close.assert_called_once()


if __name__ == "__main__":
    unittest.main()
