"""Email pipeline errors and analysis results to the configured distribution lists.
"""
import os
import socket
import smtplib
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import COMMASPACE, formatdate

from slxpipe import utils
from slxpipe.log import logger

DEFAULT_SENDER = "sol-pipe@localhost"

def get_recipients(config, kind):
    """Recipients for `errors` or `results` email, as a list.
    """
    recipients = utils.get_in(config, ("email", kind)) or []
    if utils.is_string(recipients):
        recipients = [x.strip() for x in recipients.split(",") if x.strip()]
    return recipients

def send_email(config, recipients, subject, message, files=None, sender=None):
    """Send a plain text message with optional attachments.
    """
    msg = MIMEMultipart()
    msg["Subject"] = subject
    msg["Date"] = formatdate(localtime=True)
    msg["From"] = sender or utils.get_in(config, ("email", "sender"), DEFAULT_SENDER)
    msg["To"] = COMMASPACE.join(recipients)
    msg.attach(MIMEText(message))
    for fname in files or []:
        with open(fname, "rb") as in_handle:
            part = MIMEApplication(in_handle.read(), Name=os.path.basename(fname))
        part["Content-Disposition"] = 'attachment; filename="%s"' % os.path.basename(fname)
        msg.attach(part)
    smtp = smtplib.SMTP(utils.get_in(config, ("email", "smtp_host"), "localhost"))
    try:
        smtp.sendmail(msg["From"], recipients, msg.as_string())
    finally:
        smtp.quit()
    return msg

def error_details(detail, fc_barcode=None, work_dir=None):
    """Context for an error report: where and on which host it happened.
    """
    lines = [str(detail), "",
             "Working directory : %s" % (work_dir or os.getcwd()),
             "Hostname : %s" % socket.gethostname()]
    job_id = os.environ.get("PBS_JOBID") or os.environ.get("JOB_ID") or os.environ.get("LSB_JOBID")
    if job_id:
        lines.append("Batch job ID : %s" % job_id)
    if fc_barcode:
        lines.append("Flowcell barcode : %s" % fc_barcode)
    return "\n".join(lines)

def report_error(config, subject, detail, fc_barcode=None, work_dir=None):
    """Best effort error email; failures to send are logged, not raised.
    """
    recipients = get_recipients(config, "errors")
    if not recipients:
        logger.warn("No error email recipients configured; not reporting: %s" % subject)
        return None
    try:
        return send_email(config, recipients, subject, error_details(detail, fc_barcode, work_dir))
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Could not send error email '%s': %s" % (subject, e))
        return None

def report_results(config, subject, message, files=None):
    recipients = get_recipients(config, "results")
    if not recipients:
        logger.info("No result email recipients configured; skipping: %s" % subject)
        return None
    return send_email(config, recipients, subject, message,
                      [x for x in files or [] if os.path.exists(x)])
