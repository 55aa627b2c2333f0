import getpass
import os

from dotenv import load_dotenv

from stockroom.client import AuthApiClient, AuthFlow, FlowStep, Notification, NotificationCenter
from stockroom.core.logging import configure_logging


def print_notification(notification: Notification) -> None:
    print(f"[{notification.type.value}] {notification.title}: {notification.message}")


def main() -> None:
    load_dotenv()
    configure_logging(os.getenv("LOG_LEVEL", "WARNING"))

    base_url = os.getenv("STOCKROOM_API_URL", "http://localhost:8000")
    notifications = NotificationCenter()
    notifications.add_listener(print_notification)
    flow = AuthFlow(AuthApiClient(base_url), notifications, initial=FlowStep.LOGIN)

    while flow.step is not FlowStep.AUTHENTICATED:
        if flow.step is FlowStep.LOGIN:
            choice = input("[l]ogin, [r]egister, [f]orgot password, [q]uit: ").strip().lower()
            if choice == "q":
                return
            if choice == "r":
                flow.toggle_mode()
            elif choice == "f":
                flow.open_forgot()
            else:
                email = input("Email: ").strip()
                flow.login(email, getpass.getpass("Password: "))
        elif flow.step is FlowStep.REGISTER:
            name = input("Name: ").strip()
            email = input("Email: ").strip()
            if not flow.check_email(email):
                flow.toggle_mode()
                continue
            flow.register(name, email, getpass.getpass("Password: "))
        elif flow.step in (FlowStep.OTP, FlowStep.FORGOT_OTP):
            code = input("Code from your email (or 'resend'): ").strip()
            if code == "resend":
                flow.resend_code()
            else:
                flow.verify_code(code)
        elif flow.step is FlowStep.FORGOT:
            flow.forgot(input("Email: ").strip())
        elif flow.step in (FlowStep.RESET, FlowStep.SET_PASSWORD):
            password = getpass.getpass("New password: ")
            flow.reset_password(password, getpass.getpass("Confirm password: "))

    name = (flow.user or {}).get("name") or flow.email
    print("Signed in as", name)


if __name__ == "__main__":
    main()
