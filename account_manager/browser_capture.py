"""
Interactive Roblox login.

``BrowserCredentialCapture`` drives a Chrome window through Selenium: the
operator logs in as usual and the ``.ROBLOSECURITY`` cookie is read from the
browser once it lands on the home page. The password typed into the login
form is recovered from Chrome's network log. ``AccountBrowser`` opens a
window that is already logged in as a stored account.

``PastedCookieCapture`` is the browser-less variant for machines without
Chrome: it opens the login page in the default browser and asks for the
cookie on the terminal.
"""

import concurrent.futures
import getpass
import json
import webbrowser
from collections.abc import Callable, Iterable
from typing import Any

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.service import Service as ChromeService
from selenium.webdriver.support.ui import WebDriverWait
from webdriver_manager.chrome import ChromeDriverManager

from .config import DEFAULT_USER_AGENT
from .logger import logger
from .models import CapturedCredential

ROBLOX_URL = "https://www.roblox.com"
LOGIN_URL = "https://www.roblox.com/login"
HOME_URL = "https://www.roblox.com/home"
HOME_PATH_MARKER = "roblox.com/home"
LOGIN_REQUEST_MARKERS = ("auth.roblox.com/v2/login", "auth.roblox.com/v2/signup")
COOKIE_NAME = ".ROBLOSECURITY"
WINDOW_SIZE = (880, 740)

DriverFactory = Callable[[webdriver.ChromeOptions], Any]


class BrowserError(RuntimeError):
    """The browser could not be started or stopped responding."""


def clean_session_cookie(raw: str) -> str:
    """
    Normalise a pasted ``.ROBLOSECURITY`` value.

    Accepts the bare value, ``.ROBLOSECURITY=<value>; ...`` as copied from a
    cookie header, and values carrying Roblox's ``_|WARNING:...|_`` banner.
    """
    value = (raw or "").strip().strip('"').strip("'")
    if f"{COOKIE_NAME}=" in value:
        value = value.split(f"{COOKIE_NAME}=", 1)[1]
    value = value.split(";", 1)[0].strip()
    return value


# ============================================================================
# Selenium helpers
# ============================================================================


def chrome_options(user_agent: str = DEFAULT_USER_AGENT, keep_open: bool = False) -> webdriver.ChromeOptions:
    options = webdriver.ChromeOptions()
    for argument in (
        f"--window-size={WINDOW_SIZE[0]},{WINDOW_SIZE[1]}",
        f"--user-agent={user_agent}",
        "--no-sandbox",
        "--disable-dev-shm-usage",
        "--log-level=3",
    ):
        options.add_argument(argument)
    options.add_experimental_option("excludeSwitches", ["enable-logging", "enable-automation"])
    options.add_experimental_option("useAutomationExtension", False)
    # Network events carry the login request body
    options.set_capability("goog:loggingPrefs", {"performance": "ALL"})
    if keep_open:
        options.add_experimental_option("detach", True)
    return options


def start_chrome(options: webdriver.ChromeOptions):
    """Start Chrome with a chromedriver matching the installed browser."""
    service = ChromeService(ChromeDriverManager().install())
    return webdriver.Chrome(service=service, options=options)


def session_cookie(driver) -> str | None:
    cookie = driver.get_cookie(COOKIE_NAME)
    return cookie.get("value") if cookie else None


def password_from_network_log(entries: Iterable[dict]) -> str:
    """Return the password of the last login request in Chrome performance log entries."""
    password = ""
    for entry in entries:
        try:
            message = json.loads(entry["message"])["message"]
        except (KeyError, TypeError, ValueError):
            continue
        if message.get("method") != "Network.requestWillBeSent":
            continue
        request = message.get("params", {}).get("request", {})
        url = request.get("url", "")
        if request.get("method") != "POST" or not any(marker in url for marker in LOGIN_REQUEST_MARKERS):
            continue
        try:
            body = json.loads(request.get("postData") or "")
        except ValueError:
            continue
        if isinstance(body, dict) and body.get("password"):
            password = body["password"]
    return password


def _drain_network_log(driver) -> list[dict]:
    try:
        return driver.get_log("performance")
    except WebDriverException as e:
        logger.debug(f"Performance log unavailable: {e}")
        return []


# ============================================================================
# Credential capture
# ============================================================================


class BrowserCredentialCapture:
    """Captures a session cookie from a real login in a Selenium-driven Chrome window."""

    def __init__(
        self,
        timeout: float = 300.0,
        user_agent: str = DEFAULT_USER_AGENT,
        login_url: str = LOGIN_URL,
        driver_factory: DriverFactory = start_chrome,
        poll_interval: float = 0.5,
    ):
        self._timeout = timeout
        self._user_agent = user_agent
        self._login_url = login_url
        self._driver_factory = driver_factory
        self._poll_interval = poll_interval

    def capture_credential(self) -> CapturedCredential:
        """
        Open the login page and wait until the operator has logged in.

        :raises: TimeoutError: If the login takes too long
        :raises: BrowserError: If Chrome cannot be started or crashes
        """
        try:
            driver = self._driver_factory(chrome_options(self._user_agent))
        except WebDriverException as e:
            raise BrowserError(f"Could not start Chrome: {e.msg or e}") from e

        captured_password = ""

        def logged_in(d) -> str | bool:
            nonlocal captured_password
            captured_password = password_from_network_log(_drain_network_log(d)) or captured_password
            if HOME_PATH_MARKER not in (d.current_url or ""):
                return False
            return session_cookie(d) or False

        try:
            driver.get(self._login_url)
            logger.info("Login page loaded. Please log in to capture the session cookie.")
            token = WebDriverWait(driver, self._timeout, poll_frequency=self._poll_interval).until(logged_in)
        except TimeoutException as e:
            raise TimeoutError(f"Login timed out after {self._timeout:.0f} seconds. Please try again.") from e
        except WebDriverException as e:
            raise BrowserError(f"Browser closed before the login completed: {e.msg or e}") from e
        finally:
            try:
                driver.quit()
            except WebDriverException as e:
                logger.debug(f"Error closing browser: {e}")

        logger.info(f"Login successful! Captured {COOKIE_NAME} cookie.")
        return CapturedCredential(session_token=token, password=captured_password)


class AccountBrowser:
    """Opens Chrome already logged in as a stored account."""

    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, driver_factory: DriverFactory = start_chrome):
        self._user_agent = user_agent
        self._driver_factory = driver_factory

    def open(self, session_token: str):
        """
        Start a browser with the account's session cookie set and show the home page.

        The window stays open after this process exits.

        Raises:
            BrowserError: If Chrome cannot be started or the page cannot be loaded
        """
        try:
            driver = self._driver_factory(chrome_options(self._user_agent, keep_open=True))
        except WebDriverException as e:
            raise BrowserError(f"Could not start Chrome: {e.msg or e}") from e

        try:
            # Cookies can only be set for the domain currently loaded
            driver.get(ROBLOX_URL)
            driver.delete_all_cookies()
            driver.add_cookie(
                {
                    "name": COOKIE_NAME,
                    "value": clean_session_cookie(session_token),
                    "domain": ".roblox.com",
                    "path": "/",
                    "secure": True,
                    "httpOnly": True,
                    "sameSite": "Lax",
                }
            )
            driver.get(HOME_URL)
        except WebDriverException as e:
            try:
                driver.quit()
            except WebDriverException:
                logger.debug("Browser already gone")
            raise BrowserError(f"Could not open the account browser: {e.msg or e}") from e

        logger.info("Account browser opened successfully")
        return driver


class PastedCookieCapture:
    """
    Interactive login that opens the Roblox login page in the default browser
    and asks the operator to paste the session cookie once logged in.
    """

    def __init__(
        self,
        timeout: float = 300.0,
        login_url: str = LOGIN_URL,
        fn_print: Callable[[str], None] = print,
        fn_input: Callable[[str], str] = getpass.getpass,
    ):
        self._timeout = timeout
        self._login_url = login_url
        self._fn_print = fn_print
        self._fn_input = fn_input

    def _prompt(self) -> CapturedCredential:
        token = clean_session_cookie(self._fn_input(f"Paste the {COOKIE_NAME} cookie value: "))
        if not token:
            raise ValueError(f"No {COOKIE_NAME} value entered")
        password = self._fn_input("Account password (optional, press Enter to skip): ")
        return CapturedCredential(session_token=token, password=password or "")

    def capture_credential(self) -> CapturedCredential:
        """
        Open the login page and wait for the operator to paste the cookie.

        :raises: TimeoutError: If the login takes too long
        :raises: ValueError: If nothing was pasted
        """
        text = "Opening browser for Roblox login. This prompt expires in {0:.0f} seconds"
        self._fn_print(text.format(self._timeout))

        try:
            webbrowser.open(self._login_url)
        except Exception as e:
            self._fn_print(f"Warning: Could not open browser automatically: {e}")
            self._fn_print(f"Please visit this URL manually: {self._login_url}")

        self._fn_print(f"After logging in, copy the {COOKIE_NAME} cookie from the browser's developer tools.")

        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self._prompt)
        try:
            return future.result(timeout=self._timeout)
        except concurrent.futures.TimeoutError as e:
            raise TimeoutError(f"Login timed out after {self._timeout:.0f} seconds. Please try again.") from e
        finally:
            # A prompt still blocked on stdin cannot be interrupted; don't wait for it
            executor.shutdown(wait=False)
