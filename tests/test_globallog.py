import pytest

from naza import globallog
from naza.log import AssertBehavior, Level, LogPanic, new


@pytest.fixture
def captured():
    lines = []

    def hook(level, line):
        lines.append((level, line))

    def configure(option):
        option.is_to_stdout = False
        option.hook_backend_out_fn = hook

    previous = globallog.get_global_logger()
    globallog.set_global_logger(new(configure))
    yield lines, configure
    globallog.set_global_logger(previous)


def _plain(option):
    option.timestamp_flag = False
    option.level_flag = False
    option.short_file_flag = False


def test_plain_line(captured):
    lines, configure = captured
    globallog.init(configure, _plain)
    globallog.infof("hello %s", "world")
    assert lines == [(Level.INFO, "hello world\n")]


def test_level_string_without_console(captured):
    lines, configure = captured

    def no_time_no_file(option):
        option.timestamp_flag = False
        option.short_file_flag = False

    globallog.init(configure, no_time_no_file)
    globallog.info("hello")
    assert lines[-1][1] == " INFO hello\n"


def test_level_filter(captured):
    lines, configure = captured

    def info_level(option):
        option.level = Level.INFO

    globallog.init(configure, info_level)
    globallog.debug("hidden")
    globallog.warn("shown")
    assert [level for level, _ in lines] == [Level.WARN]


def test_caller_location_is_reported(captured):
    lines, _ = captured
    globallog.debugf("where %d", 1)
    assert "test_globallog.py:" in lines[-1][1]
    assert "where 1" in lines[-1][1]


def test_print_family_logs_at_info(captured):
    lines, _ = captured
    globallog.print("a")
    globallog.printf("b%s", "c")
    globallog.println("d")
    globallog.output(2, "e")
    assert [level for level, _ in lines] == [Level.INFO] * 4


def test_fatal_exits_with_code_one(captured):
    lines, _ = captured
    with pytest.raises(SystemExit) as info:
        globallog.fatal("Fatal")
    assert info.value.code == 1
    assert lines[-1][0] == Level.FATAL


def test_fatalf_and_fatalln_exit(captured):
    with pytest.raises(SystemExit) as info:
        globallog.fatalf("Fatalf%s", ".")
    assert info.value.code == 1
    with pytest.raises(SystemExit) as info:
        globallog.fatalln("Fatalln")
    assert info.value.code == 1


def test_panic_raises(captured):
    lines, _ = captured
    with pytest.raises(LogPanic, match="aaa"):
        globallog.panic("aaa")
    with pytest.raises(LogPanic, match="bbb"):
        globallog.panicf("%s", "bbb")
    with pytest.raises(LogPanic, match="aaa"):
        globallog.panicln("aaa")
    assert [level for level, _ in lines] == [Level.PANIC, Level.PANIC, Level.INFO]


def test_assert_success_logs_nothing(captured):
    lines, _ = captured
    globallog.assert_equal(None, None)
    globallog.assert_equal(1, 1)
    globallog.assert_equal("aaa", "aaa")
    globallog.assert_equal(b"\x00\x01\x02", b"\x00\x01\x02")
    assert lines == []


def test_assert_error_behavior(captured):
    lines, _ = captured
    globallog.assert_equal(None, 1)
    globallog.assert_equal(None, 1, "I guess this could be failed.", "I guess so")
    assert lines[0][0] == Level.ERROR
    assert "assert failed. excepted=<nil>, but actual=1" in lines[0][1]
    assert "extInfo=" in lines[1][1]


def test_assert_fatal_behavior(captured):
    _, configure = captured

    def fatal_behavior(option):
        option.assert_behavior = AssertBehavior.FATAL

    globallog.init(configure, fatal_behavior)
    with pytest.raises(SystemExit) as info:
        globallog.assert_equal(None, 1)
    assert info.value.code == 1


def test_assert_panic_behavior(captured):
    _, configure = captured

    def panic_behavior(option):
        option.assert_behavior = AssertBehavior.PANIC

    globallog.init(configure, panic_behavior)
    with pytest.raises(LogPanic):
        globallog.assert_equal(b"", "aaa")


def test_with_prefix(captured):
    lines, _ = captured
    logger = globallog.with_prefix("log_test").with_prefix("inner")
    logger.info("x")
    assert "[log_test] [inner] x" in lines[-1][1]


def test_get_option_after_init(captured):
    _, configure = captured

    def debug_level(option):
        option.level = Level.DEBUG

    globallog.init(configure, debug_level)
    assert globallog.get_option().level == Level.DEBUG


def test_set_and_get_global_logger(captured):
    lines, configure = captured
    logger = new(configure)
    globallog.set_global_logger(logger)
    assert globallog.get_global_logger() is logger
    globallog.out(Level.WARN, 2, "direct")
    assert lines[-1][0] == Level.WARN


def test_dummy_logger_logs_nothing():
    assert globallog.DUMMY_LOGGER.get_option().level == Level.LOG_NOTHING