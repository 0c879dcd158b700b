"""
Parsing of JUnit report files. There is no schema for these files, so the
parser has to cope with the shapes different tools produce.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from junit_report_parser.report_parser import (
    MalformedReportError,
    ReportParser,
    parse,
    parse_document,
)


def _parse_one(path, keep_long_stdio=False):
    results = parse(path, keep_long_stdio)
    assert len(results) == 1
    return results[0]


def test_case_class_names_from_testcase_attribute(data_file):
    result = _parse_one(data_file("junit-report-1233.xml"))

    class_names = [c.class_name for c in result.cases]
    assert class_names == [
        "test.foo.bar.DefaultIntegrationTest",
        "test.foo.bar.BundleResolverIntegrationTest",
        "test.foo.bar.BundleResolverIntegrationTest",
        "test.foo.bar.ProjectSettingsTest",
        "test.foo.bar.ProjectSettingsTest",
    ]
    assert result.name == "test.foo.bar.AllTests"
    assert result.duration == 3.245
    assert result.stdout == "Loading bundles from /tmp/bundles\nResolved 12 bundles\n"
    assert result.get_case("testResolveMissingBundle").error_details.startswith(
        "junit.framework.AssertionFailedError: expected:<1> but was:<0>")


def test_shared_placeholder_class_name_is_kept_verbatim(data_file):
    result = _parse_one(data_file("junit-report-1463.xml"))

    for case in result.cases:
        assert case.class_name == "WLI-FI-Tests-Fake", case.display_name
    assert [c.name for c in result.cases] == [
        "IF_importTradeConfirmationToDwh",
        "IF_getAmartaDisbursements",
        "IF_importGLReconDataToDwh",
        "IF_importTradeInstructionsToDwh",
        "IF_getDeviationTradeInstructions",
        "IF_getDwhGLData",
    ]
    assert result.cases[4].error_details == "XPath Match failed"


def test_concatenated_documents_yield_independent_suites(data_file):
    results = parse(data_file("junit-report-1472.xml"), False)

    assert len(results) > 20
    assert results[0].name == "make_test.t_basic_lint_t"
    assert results[1].name == "make_test.t_basic_meta_t"
    assert results[0].stdout != results[1].stdout
    assert "basic lint" in results[0].stdout
    assert "basic meta" not in results[0].stdout
    assert results[-1].name == "make_test.t_cleanup_t"


def test_suite_inside_wrapper(data_file):
    result = _parse_one(data_file("junit-report-2874.xml"))
    assert result.name == "DummyTest"


def test_error_details(data_file):
    result = _parse_one(data_file("junit-report-errror-details.xml"))

    for case in result.cases:
        assert case.class_name == "some.package.somewhere.WhooHoo", case.display_name
    assert result.cases[0].error_details == "this normally has the string like, expected mullet, but got bream"
    assert result.cases[1].error_details == "NullPointerException"
    assert result.cases[2].error_details is None


def test_suite_stdio_trimming(write_report):
    lines = ["<testsuites name='x'>",
             "<testsuite failures='0' errors='0' tests='1' name='x'>",
             "<testcase name='x' classname='x'/>",
             "<system-out/>"]
    err = "First line is intact.\n"
    err += "".join(f"Line #{i} might be elided.\n" for i in range(100))
    err += "Last line is intact.\n"
    text = "\n".join(lines) + "\n<system-err><![CDATA[" + err + "]]></system-err>\n</testsuite>\n</testsuites>\n"
    path = write_report(text)

    sr = _parse_one(path)

    assert len(sr.stderr) == 1028, sr.stderr
    assert sr.stderr.startswith("First line is intact.\n")
    assert sr.stderr.endswith("Last line is intact.\n")
    assert sr.stdout == ""
    assert len(_parse_one(path, keep_long_stdio=True).stderr) == len(err)


def test_wrapper_children_in_document_order(write_report):
    suites = "".join(f'<testsuite name="S{i}"><testcase name="t"/></testsuite>' for i in range(7))
    path = write_report(f"<testsuites>{suites}</testsuites>")

    results = parse(path)

    assert [r.name for r in results] == [f"S{i}" for i in range(7)]
    assert all(r.cases[0].class_name == r.name for r in results)


def test_vendor_wrapper_elements_are_searched(write_report):
    path = write_report(
        '<results><run><testsuite name="A"/></run><properties/><testsuite name="B"/></results>'
    )
    assert [r.name for r in parse(path)] == ["A", "B"]


def test_wrapper_with_cases_is_a_suite(write_report):
    path = write_report('<testsuites name="flat"><testcase name="a"/><testcase name="b"/></testsuites>')

    results = parse(path)

    assert len(results) == 1
    assert results[0].name == "flat"
    assert len(results[0].cases) == 2


def test_nested_suites_come_before_their_parent(write_report):
    path = write_report(
        '<testsuite name="outer">'
        '<testsuite name="inner1"><testcase name="a"/></testsuite>'
        '<testsuite name="inner2"><testcase name="b"/></testsuite>'
        '<testcase name="c"/>'
        '</testsuite>'
    )
    assert [r.name for r in parse(path)] == ["inner1", "inner2", "outer"]


def test_nested_suites_without_own_cases_skip_parent(write_report):
    path = write_report(
        '<testsuite name="outer"><testsuite name="inner"><testcase name="a"/></testsuite></testsuite>'
    )
    assert [r.name for r in parse(path)] == ["inner"]


def test_named_suite_with_declared_failures_and_no_cases(write_report):
    path = write_report('<testsuite name="pkg.LoadFailure" tests="1" failures="0" errors="1"/>')

    result = _parse_one(path)

    assert len(result.cases) == 1
    assert result.cases[0].error_details


def test_empty_wrapper_gives_no_suites(write_report):
    assert parse(write_report("<testsuites/>")) == []


def test_file_path_is_recorded(write_report):
    path = write_report('<testsuite name="s"/>')
    assert _parse_one(path).file == str(path)


def test_malformed_report_raises_with_path(write_report):
    path = write_report('<testsuite name="s"><testcase name="a"></testsuite>')

    with pytest.raises(MalformedReportError) as excinfo:
        parse(path)

    assert str(path) in str(excinfo.value)
    assert excinfo.value.path == str(path)


def test_concatenated_garbage_still_raises(write_report):
    path = write_report('<testsuite name="a"/><testsuite name="b">')
    with pytest.raises(MalformedReportError):
        parse(path)


def test_missing_file_raises_oserror(tmp_path):
    with pytest.raises(OSError):
        parse(tmp_path / "nope.xml")


def test_concatenated_documents_keep_declared_encoding():
    data = ('<?xml version="1.0" encoding="ISO-8859-1"?><testsuite name="caf\xe9"/>'
            '<?xml version="1.0" encoding="ISO-8859-1"?><testsuite name="na\xefve"/>').encode("latin-1")

    results = ReportParser().parse_bytes(data)

    assert [r.name for r in results] == ["caf\xe9", "na\xefve"]
    assert results[0].file is None


def test_parse_document_returns_synthetic_root_for_concatenation():
    root = parse_document(b'<testsuite name="a"/>\n<!DOCTYPE testsuite>\n<testsuite name="b"/>')
    assert [child.get("name") for child in root] == ["a", "b"]


def test_many_concatenated_suites(write_report):
    body = "".join(
        f'<?xml version="1.0"?>\n<testsuite name="s{i}"><system-out>out {i}</system-out></testsuite>\n'
        for i in range(200)
    )
    results = parse(write_report(body))

    assert len(results) == 200
    assert [r.stdout for r in results[:3]] == ["out 0", "out 1", "out 2"]


def test_concurrent_parsing_of_different_files(data_file):
    files = [data_file(n) for n in ("junit-report-1233.xml", "junit-report-1463.xml",
                                    "junit-report-1472.xml", "junit-report-2874.xml")] * 3
    expected = [parse(f) for f in files]

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(parse, files))

    assert results == expected


def test_parser_diagnostics(data_file):
    result = ReportParser(diagnostics=True).parse(data_file("junit-report-1463.xml"))[0]
    assert "class_name: suite name" in result.cases[0].diagnostics


def test_concatenated_documents_keep_quoted_declarations_in_output():
    data = (b'<?xml version="1.0"?>\n'
            b'<testsuite name="a"><system-out><![CDATA[payload: <?xml version="1.0"?><r/>\n'
            b'<!DOCTYPE r>\n]]></system-out>'
            b'<testcase name="t"><failure><![CDATA[got <?xml version="1.0"?>]]></failure></testcase>'
            b'</testsuite>\n'
            b'<?xml version="1.0"?>\n<!DOCTYPE testsuite>\n<testsuite name="b"/>\n')

    results = ReportParser().parse_bytes(data)

    assert [r.name for r in results] == ["a", "b"]
    assert results[0].stdout == 'payload: <?xml version="1.0"?><r/>\n<!DOCTYPE r>\n'
    assert results[0].cases[0].error_details == 'got <?xml version="1.0"?>'


def test_concatenated_documents_with_byte_order_mark():
    data = (b'\xef\xbb\xbf<?xml version="1.0" encoding="UTF-8"?><testsuite name="a"/>\n'
            b'<?xml version="1.0" encoding="UTF-8"?><testsuite name="b"/>')

    assert [r.name for r in ReportParser().parse_bytes(data)] == ["a", "b"]


def test_non_finite_declared_failures_do_not_stop_parsing():
    results = ReportParser().parse_bytes(b'<testsuite name="s" failures="inf"/>')

    assert [r.name for r in results] == ["s"]
