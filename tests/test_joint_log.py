import logging
import tempfile
import unittest
from pathlib import Path

from bodyosc.core.constants import JOINT_LOG_ORDER, JointType, TrackingState
from bodyosc.core.joint_log import JointRecordLogger, format_joint_record
from bodyosc.core.skeleton import Body, Joint, as_position


def _body():
    joints = {
        jt: Joint(jt, as_position((float(jt), 0.5, 1.0)), TrackingState.Tracked)
        for jt in JointType
    }
    return Body(slot_index=1, is_tracked=True, joints=joints)


class JointRecordTests(unittest.TestCase):
    def test_log_order_is_alphabetical(self):
        names = [jt.name for jt in JOINT_LOG_ORDER]
        self.assertEqual(names, sorted(names))
        self.assertEqual(names[0], "AnkleLeft")
        self.assertEqual(names[-1], "WristRight")
        self.assertEqual(len(names), 25)

    def test_record_follows_log_order(self):
        values = format_joint_record(_body()).split(" ")
        self.assertEqual(len(values), 75)
        xs = values[0::3]
        self.assertEqual(xs, [str(int(jt)) for jt in JOINT_LOG_ORDER])
        self.assertEqual(values[1:3], ["0.5", "1"])

    def test_file_logger_writes_one_line_per_body(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "logs" / "joints.log"
            joint_logger = JointRecordLogger(str(path), logger=logging.getLogger("bodyosc.joints.test"))
            try:
                joint_logger.log_body(_body())
                joint_logger.log_body(_body())
            finally:
                joint_logger.close()
            lines = path.read_text(encoding="utf-8").splitlines()
            self.assertEqual(len(lines), 2)
            self.assertIn("slot=1 14 0.5 1 18 0.5 1", lines[0])

    def test_close_restores_logger_settings(self):
        named = logging.getLogger("bodyosc.joints.restore-test")
        named.setLevel(logging.WARNING)
        named.propagate = True
        with tempfile.TemporaryDirectory() as tmp:
            joint_logger = JointRecordLogger(str(Path(tmp) / "joints.log"), logger=named)
            self.assertEqual(named.level, logging.INFO)
            self.assertFalse(named.propagate)
            joint_logger.close()
        self.assertEqual(named.level, logging.WARNING)
        self.assertTrue(named.propagate)
        self.assertEqual(named.handlers, [])


if __name__ == "__main__":
    unittest.main()
