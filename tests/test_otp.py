import requests

from communityhub.functions.otp import OtpStore, WatiOtpSender, generate_otp


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class FakeResponse:
    def __init__(self, data, status=200):
        self.data = data
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f'{self.status} error')

    def json(self):
        return self.data


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


def test_generated_codes_are_four_digits():
    for _ in range(50):
        code = generate_otp()
        assert len(code) == 4 and code.isdigit() and code[0] != '0'


def test_code_is_single_use():
    otp = OtpStore()
    code = otp.issue('9876543210')
    assert otp.verify('9876543210', code)
    assert not otp.verify('9876543210', code)


def test_wrong_code_keeps_the_pending_one():
    otp = OtpStore()
    code = otp.issue('9876543210')
    wrong = '0000' if code != '0000' else '1111'
    assert not otp.verify('9876543210', wrong)
    assert otp.verify('9876543210', code)


def test_code_expires():
    clock = FakeClock()
    otp = OtpStore(ttl_seconds=300, clock=clock)
    code = otp.issue('9876543210')
    clock.now += 301
    assert not otp.verify('9876543210', code)


def test_reissue_replaces_previous_code():
    otp = OtpStore()
    first = otp.issue('9876543210')
    second = otp.issue('9876543210')
    if first != second:
        assert not otp.verify('9876543210', first)
    assert otp.verify('9876543210', second)


def test_wati_sender_posts_template_message():
    session = FakeSession(FakeResponse({'result': True}))
    sender = WatiOtpSender('https://wati.example/', 'abc', 'otp_template', session=session)
    assert sender('9876543210', '4321')

    url, kwargs = session.calls[0]
    assert url == 'https://wati.example/api/v1/sendTemplateMessage'
    assert kwargs['params'] == {'whatsappNumber': '919876543210'}
    assert kwargs['headers']['Authorization'] == 'Bearer abc'
    assert kwargs['json']['template_name'] == 'otp_template'
    assert kwargs['json']['parameters'] == [{'name': '1', 'value': '4321'}]


def test_wati_sender_reports_failures():
    rejected = WatiOtpSender('https://wati.example', 'abc', 't', session=FakeSession(FakeResponse({'result': False})))
    assert not rejected('9876543210', '4321')

    server_error = WatiOtpSender('https://wati.example', 'abc', 't', session=FakeSession(FakeResponse({}, status=500)))
    assert not server_error('9876543210', '4321')

    offline = WatiOtpSender('https://wati.example', 'abc', 't', session=FakeSession(error=requests.ConnectionError()))
    assert not offline('9876543210', '4321')


def test_wati_sender_without_credentials():
    session = FakeSession(FakeResponse({'result': True}))
    assert not WatiOtpSender(None, None, 't', session=session)('9876543210', '4321')
    assert session.calls == []
