"""Unit tests for cgroup membership and CPU accounting. / cgroup 成员关系与 CPU 记账单元测试。"""

import itertools
import os

import pytest

from osprobe.environment.cgroup import (
    CgroupCpuAccountant,
    CgroupFormatError,
    CgroupMembershipResolver,
    parse_cpu_stat,
    parse_membership,
    parse_membership_line,
    parse_single_integer,
)
from osprobe.environment.os_stats import CpuStat


CPU_STAT_LINES = ["nr_periods 17992", "nr_throttled 1311", "throttled_time 139298645489"]


def _write(path, text):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)


def _cgroup_tree(root, group="/docker/abc", usage="364869866063112\n",
                 period="100000\n", quota="50000\n", stat="\n".join(CPU_STAT_LINES) + "\n"):
    """Lay out cpu/ and cpuacct/ hierarchies under ``root``; None skips a file."""
    rel = group.lstrip("/")
    cpu = os.path.join(root, "cpu", rel)
    cpuacct = os.path.join(root, "cpuacct", rel)
    for directory, name, text in [
        (cpuacct, "cpuacct.usage", usage),
        (cpu, "cpu.cfs_period_us", period),
        (cpu, "cpu.cfs_quota_us", quota),
        (cpu, "cpu.stat", stat),
    ]:
        os.makedirs(directory, exist_ok=True)
        if text is not None:
            _write(os.path.join(directory, name), text)
    return CgroupCpuAccountant(os.path.join(root, "cpu"), os.path.join(root, "cpuacct"))


# ======================================================================
# Membership parsing / 成员关系解析
# ======================================================================

class TestParseMembership:
    def test_combined_subsystems(self):
        assert parse_membership(["4:cpu,cpuacct:/docker/abc"]) == {
            "cpu": "/docker/abc",
            "cpuacct": "/docker/abc",
        }

    def test_typical_file(self):
        lines = [
            "11:cpuset:/",
            "10:memory:/user.slice",
            "4:cpu,cpuacct:/user.slice",
            "3:net_cls,net_prio,blkio:/",
            "1:name=systemd:/user.slice/user-1000.slice/session-2.scope",
        ]
        groups = parse_membership(lines)
        assert groups["cpu"] == "/user.slice"
        assert groups["cpuacct"] == "/user.slice"
        assert groups["cpuset"] == "/"
        assert groups["blkio"] == "/"
        assert groups["name=systemd"] == "/user.slice/user-1000.slice/session-2.scope"

    def test_pure_function(self):
        lines = ["4:cpu,cpuacct:/docker/abc", "2:memory:/docker/abc"]
        assert parse_membership(lines) == parse_membership(list(lines))

    def test_path_may_contain_colons(self):
        assert parse_membership(["4:cpu:/a:b:c"]) == {"cpu": "/a:b:c"}

    def test_last_write_wins(self):
        assert parse_membership(["4:cpu:/first", "5:cpu:/second"]) == {"cpu": "/second"}

    def test_blank_lines_ignored(self):
        assert parse_membership(["", "4:cpu:/x", "   "]) == {"cpu": "/x"}

    @pytest.mark.parametrize("line", [
        "garbage",
        "4:cpu",
        "x:cpu:/docker",
        "4:cpu:docker/abc",
        "4:cpu,,cpuacct:/docker",
        "0::/",
    ])
    def test_malformed_line_rejected(self, line):
        assert parse_membership_line(line) is None

    def test_malformed_line_skipped_others_kept(self):
        """Malformed lines are skipped; the well-formed ones still resolve."""
        lines = ["4:cpu,cpuacct:/docker/abc", "this is not a cgroup line", "0::/", "2:memory:/docker/abc"]
        assert parse_membership(lines) == {
            "cpu": "/docker/abc",
            "cpuacct": "/docker/abc",
            "memory": "/docker/abc",
        }


class TestMembershipResolver:
    def test_reads_proc_self_cgroup(self, tmp_path):
        _write(str(tmp_path / "self" / "cgroup"), "4:cpu,cpuacct:/docker/abc\n2:memory:/\n")
        r = CgroupMembershipResolver(proc_root=str(tmp_path))
        assert r.resolve() == {"cpu": "/docker/abc", "cpuacct": "/docker/abc", "memory": "/"}

    def test_not_cached(self, tmp_path):
        path = str(tmp_path / "self" / "cgroup")
        _write(path, "4:cpu,cpuacct:/a\n")
        r = CgroupMembershipResolver(proc_root=str(tmp_path))
        assert r.resolve()["cpu"] == "/a"
        _write(path, "4:cpu,cpuacct:/b\n")
        assert r.resolve()["cpu"] == "/b"

    def test_missing_file_raises_oserror(self, tmp_path):
        r = CgroupMembershipResolver(proc_root=str(tmp_path))
        with pytest.raises(OSError):
            r.resolve()


# ======================================================================
# cpu.stat / CPU 统计
# ======================================================================

class TestParseCpuStat:
    @pytest.mark.parametrize("lines", list(itertools.permutations(CPU_STAT_LINES)))
    def test_order_independent(self, lines):
        assert parse_cpu_stat(lines) == CpuStat(17992, 1311, 139298645489)

    @pytest.mark.parametrize("missing", range(3))
    def test_missing_key_leaves_only_that_field_none(self, missing):
        lines = [l for i, l in enumerate(CPU_STAT_LINES) if i != missing]
        stat = parse_cpu_stat(lines)
        fields = [stat.number_of_periods, stat.number_of_times_throttled, stat.time_throttled_nanos]
        expected = [17992, 1311, 139298645489]
        expected[missing] = None
        assert fields == expected

    def test_unknown_keys_ignored(self):
        lines = CPU_STAT_LINES + ["nr_bursts 0", "burst_time 0", ""]
        assert parse_cpu_stat(lines) == CpuStat(17992, 1311, 139298645489)

    def test_bad_value_raises(self):
        with pytest.raises(CgroupFormatError):
            parse_cpu_stat(["nr_periods lots", "nr_throttled 1", "throttled_time 2"])

    def test_missing_value_raises(self):
        with pytest.raises(CgroupFormatError):
            parse_cpu_stat(["nr_periods"])


class TestParseSingleInteger:
    def test_value(self):
        assert parse_single_integer("100000\n") == 100000

    def test_no_quota_sentinel(self):
        assert parse_single_integer("-1\n") == -1

    @pytest.mark.parametrize("text", ["", "abc", "1\n2\n", "1.5"])
    def test_invalid(self, text):
        with pytest.raises(CgroupFormatError):
            parse_single_integer(text)

    def test_format_error_is_value_error(self):
        assert issubclass(CgroupFormatError, ValueError)


# ======================================================================
# CgroupCpuAccountant / CPU 记账器
# ======================================================================

class TestCpuAccountant:
    GROUPS = {"cpu": "/docker/abc", "cpuacct": "/docker/abc"}

    def test_full_accounting(self, tmp_path):
        acct = _cgroup_tree(str(tmp_path))
        cg = acct.accounting(self.GROUPS)
        assert cg.cpu_acct_control_group == "/docker/abc"
        assert cg.cpu_acct_usage_nanos == 364869866063112
        assert cg.cpu_control_group == "/docker/abc"
        assert cg.cpu_cfs_period_micros == 100000
        assert cg.cpu_cfs_quota_micros == 50000
        assert cg.cpu_stat == CpuStat(17992, 1311, 139298645489)

    def test_unlimited_quota(self, tmp_path):
        acct = _cgroup_tree(str(tmp_path), quota="-1\n")
        assert acct.accounting(self.GROUPS).cpu_cfs_quota_micros == -1

    def test_root_group(self, tmp_path):
        acct = _cgroup_tree(str(tmp_path), group="/")
        cg = acct.accounting({"cpu": "/", "cpuacct": "/"})
        assert cg.cpu_cfs_period_micros == 100000

    def test_different_groups_per_subsystem(self, tmp_path):
        root = str(tmp_path)
        _cgroup_tree(root, group="/cpu-group")
        _cgroup_tree(root, group="/acct-group", usage="42\n")
        acct = CgroupCpuAccountant(os.path.join(root, "cpu"), os.path.join(root, "cpuacct"))
        cg = acct.accounting({"cpu": "/cpu-group", "cpuacct": "/acct-group"})
        assert cg.cpu_acct_usage_nanos == 42
        assert cg.cpu_control_group == "/cpu-group"

    @pytest.mark.parametrize("missing", ["usage", "period", "quota", "stat"])
    def test_missing_file_raises_oserror(self, tmp_path, missing):
        acct = _cgroup_tree(str(tmp_path), **{missing: None})
        with pytest.raises(OSError):
            acct.accounting(self.GROUPS)

    def test_garbage_usage_raises_format_error(self, tmp_path):
        acct = _cgroup_tree(str(tmp_path), usage="not-a-number\n")
        with pytest.raises(CgroupFormatError):
            acct.accounting(self.GROUPS)

    def test_missing_subsystem_raises_format_error(self, tmp_path):
        acct = _cgroup_tree(str(tmp_path))
        with pytest.raises(CgroupFormatError):
            acct.accounting({"cpu": "/docker/abc"})

    def test_file_path_strips_leading_slash(self):
        assert CgroupCpuAccountant.file_path("/sys/fs/cgroup/cpu", "/docker/abc", "cpu.stat") == \
            os.path.join("/sys/fs/cgroup/cpu", "docker/abc", "cpu.stat")
        assert CgroupCpuAccountant.file_path("/sys/fs/cgroup/cpu", "/", "cpu.stat") == \
            os.path.join("/sys/fs/cgroup/cpu", "cpu.stat")
