"""User-facing task status text shown in the PrintNanny dashboard."""

LICENSE_ACTIVATE_STARTED_MSG = "Verifying PrintNanny license"

LICENSE_ACTIVATE_SUCCESS_MSG = "PrintNanny license is active"
LICENSE_ACTIVATE_SUCCESS_HELP = "https://printnanny.ai/docs/quick-start/"

LICENSE_ACTIVATE_FAILED_MSG = (
    "The license on this device does not match the license issued to it. "
    "Download a new license from the PrintNanny dashboard and re-flash your SD card."
)
LICENSE_ACTIVATE_FAILED_HELP = "https://printnanny.ai/docs/faq/#license-check-failed"
