"""
QR Studio
Framework: PySide6
Deps: qrcode, Pillow, opencv-python, numpy, python-dotenv
"""

import logging
import sys
from datetime import datetime

from PySide6.QtCore import Qt, QThread, QObject, QTimer, QUrl, Signal, Slot
from PySide6.QtGui import QFont, QPixmap, QImage, QAction, QKeySequence, QDesktopServices
from PySide6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QLabel,
    QTabWidget, QFrame, QStatusBar, QListWidget, QListWidgetItem,
    QTextEdit, QLineEdit, QComboBox, QCheckBox, QPushButton, QFileDialog,
    QTableWidget, QTableWidgetItem, QHeaderView, QMessageBox, QScrollArea, QSpinBox
)

# third-party
from PIL import Image, ImageQt
import cv2

import qr_config
from qr_classify import LABELS, classify
from qr_dispatch import Dispatcher, Effects, PlatformCapabilities
from qr_payloads import (
    SOCIAL_PROFILES, ContactRecord, EmailRecord, EventRecord, GeoRecord, PayloadKind,
    PayloadRecords, PhoneRecord, SmsRecord, SocialRecord, WifiRecord, WifiSecurity,
    build, is_blank_payload,
)
from qr_symbols import (
    ERROR_LEVELS, STYLE_PRESETS, RecentFilter, RenderOptions, RenderSequencer, SymbolError,
    export_filename, load_image, read_all, render_image, render_svg, save_image,
)

logger = logging.getLogger(__name__)


# ---------------- Palette ----------------
PAL = {
    "bg": "#1e1f24",
    "card": "#2a2d32",
    "border": "#3a3d44",
    "text": "#d1d5db",
    "muted": "#9aa3b2",
    "accent": "#8b5cf6"
}

IMAGE_FILTERS = "Images (*.png *.jpg *.jpeg *.bmp *.webp *.tif *.tiff *.ico);;All Files (*)"

STYLESHEET = f"""
    QWidget {{ font-family: Tahoma, Arial, sans-serif; font-size: 10pt; color: {PAL['text']}; background: {PAL['bg']}; }}
    QFrame#Card {{ background: {PAL['card']}; border: 1px solid {PAL['border']}; border-radius: 6px; }}
    QLabel#SectionTitle {{ font-weight: 600; background: rgba(255,255,255,0.04); border: 1px solid {PAL['border']}; border-radius: 4px; padding-left: 8px; }}
    QTextEdit, QLineEdit, QComboBox, QSpinBox, QListWidget, QTableWidget {{ border: 1px solid {PAL['border']}; border-radius: 4px; padding: 4px; }}
    QTableWidget {{ gridline-color: {PAL['border']}; }}
    QPushButton {{ background: {PAL['card']}; border: 1px solid {PAL['border']}; border-radius: 6px; padding: 6px 12px; }}
    QPushButton#Primary {{ background: {PAL['accent']}; color: white; font-weight: 600; }}
    QPushButton:disabled {{ color: {PAL['muted']}; }}
"""

PAYLOAD_TYPES = [
    ("Website URL", PayloadKind.URL),
    ("Wi-Fi", PayloadKind.WIFI),
    ("Contact Card", PayloadKind.CONTACT),
    ("Email", PayloadKind.EMAIL),
    ("SMS", PayloadKind.SMS),
    ("Social Media", PayloadKind.SOCIAL),
    ("Phone", PayloadKind.PHONE),
    ("Location", PayloadKind.GEO),
    ("Event", PayloadKind.EVENT),
]


# ---------------- Utils ----------------
def pil_to_qpixmap(img: Image.Image) -> QPixmap:
    return QPixmap.fromImage(ImageQt.ImageQt(img))


def cv_to_qimage(frame) -> QImage:
    """Convert OpenCV BGR/BGRA frame to QImage."""
    if frame is None:
        return QImage()
    if len(frame.shape) == 2:
        h, w = frame.shape
        return QImage(frame.data, w, h, w, QImage.Format_Grayscale8).copy()
    h, w, ch = frame.shape
    if ch == 4:
        rgba = cv2.cvtColor(frame, cv2.COLOR_BGRA2RGBA)
        return QImage(rgba.data, w, h, ch * w, QImage.Format_RGBA8888).copy()
    rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
    return QImage(rgb.data, w, h, 3 * w, QImage.Format_RGB888).copy()


# ---------------- Small UI helpers ----------------
class Card(QFrame):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setObjectName("Card")
        self.setFrameShape(QFrame.NoFrame)


class HeaderLabel(QLabel):
    """Uniform header bar used across all cards."""
    def __init__(self, text: str, parent=None):
        super().__init__(text, parent)
        self.setObjectName("SectionTitle")
        self.setAlignment(Qt.AlignVCenter | Qt.AlignLeft)
        self.setFixedHeight(28)
        self.setMargin(6)


# ---------------- Desktop effects ----------------
class QtEffects(Effects):
    """Dispatcher effects backed by the desktop: URL handlers, save dialogs, message boxes."""

    def __init__(self, parent: QWidget):
        self.parent = parent

    def open_url(self, url):
        if not QDesktopServices.openUrl(QUrl(url)):
            raise RuntimeError(f"no handler accepted {url}")

    def open_uri(self, uri):
        self.open_url(uri)

    def download(self, item):
        ext = item.filename.rsplit(".", 1)[-1]
        path, _ = QFileDialog.getSaveFileName(
            self.parent, "Save File", item.filename, f"{item.media_type} (*.{ext});;All Files (*)"
        )
        if not path:
            return
        with open(path, "wb") as fh:
            fh.write(item.content)

    def show_message(self, title, text):
        QMessageBox.information(self.parent, title, text)


# ---------------- Workers ----------------
class CameraOpener(QObject):
    opened = Signal(object, str)  # (cap or None, error)
    def __init__(self, index: int = 0):
        super().__init__()
        self.index = index
    def run(self):
        try:
            # Try DirectShow (faster on many Windows setups)
            cap = cv2.VideoCapture(self.index, cv2.CAP_DSHOW)
            if not cap or not cap.isOpened():
                cap = cv2.VideoCapture(self.index)
            if not cap or not cap.isOpened():
                self.opened.emit(None, "Failed to open camera")
                return
            # lower resolution for faster init
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, 640)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, 480)
            self.opened.emit(cap, "")
        except Exception as e:
            logger.warning("Camera open failed: %s", e)
            self.opened.emit(None, str(e))


class RenderWorker(QObject):
    rendered = Signal(int, object, str)  # (token, image or None, error)

    @Slot(int, str, object, object)
    def render(self, token, payload, options, logo):
        try:
            img = render_image(payload, options, logo)
            self.rendered.emit(token, img, "")
        except (SymbolError, ValueError) as e:
            logger.warning("Render failed: %s", e)
            self.rendered.emit(token, None, str(e))


# ---------------- Generate Tab ----------------
class GenerateTab(QWidget):
    render_requested = Signal(int, str, object, object)

    def __init__(self, status_cb):
        super().__init__()
        self.status_cb = status_cb
        self.logo_img: Image.Image | None = None
        self.current_img: Image.Image | None = None
        self.current_payload = ""
        self.sequencer = RenderSequencer()

        self._build_ui()

        # renders run off the UI thread; stale tokens are dropped on arrival
        self.render_thread = QThread(self)
        self.worker = RenderWorker()
        self.worker.moveToThread(self.render_thread)
        self.render_requested.connect(self.worker.render)
        self.worker.rendered.connect(self._on_rendered)
        self.render_thread.start()

        # debounce preview while typing
        self.timer = QTimer(self)
        self.timer.setSingleShot(True)
        self.timer.setInterval(qr_config.PREVIEW_DELAY_MS)
        self.timer.timeout.connect(self.update_preview)
        self._watch_inputs()

    # ---- UI
    def _build_ui(self):
        root = QHBoxLayout(self)
        root.setContentsMargins(8, 8, 8, 8)
        root.setSpacing(12)

        # Left: type list
        type_card = Card()
        tl = QVBoxLayout(type_card)
        tl.setContentsMargins(8, 8, 8, 8)
        tl.setSpacing(8)
        tl.addWidget(HeaderLabel("QR Type"))

        self.type_list = QListWidget()
        for label, _ in PAYLOAD_TYPES:
            self.type_list.addItem(QListWidgetItem(label))
        self.type_list.setCurrentRow(0)
        self.type_list.currentRowChanged.connect(self._rebuild_fields)
        tl.addWidget(self.type_list)

        # Middle: content fields + render options
        self.content_card = Card()
        cc = QVBoxLayout(self.content_card)
        cc.setContentsMargins(8, 8, 8, 8)
        cc.setSpacing(8)
        cc.addWidget(HeaderLabel("Content"))

        self.fields_area = QScrollArea()
        self.fields_area.setWidgetResizable(True)
        self.fields_host = QWidget()
        self.fields_layout = QVBoxLayout(self.fields_host)
        self.fields_layout.setContentsMargins(0, 0, 0, 0)
        self.fields_layout.setSpacing(6)
        self.fields_area.setWidget(self.fields_host)
        cc.addWidget(self.fields_area, 1)

        cc.addWidget(HeaderLabel("Design"))
        self.style_box = QComboBox(); self.style_box.addItems(list(STYLE_PRESETS))
        self.style_box.setCurrentText(qr_config.STYLE)
        self.level_box = QComboBox(); self.level_box.addItems(list(ERROR_LEVELS))
        self.level_box.setCurrentText(qr_config.ERROR_LEVEL)
        self.size_box = QSpinBox()
        self.size_box.setRange(qr_config.SIZE_MIN, qr_config.SIZE_MAX)
        self.size_box.setSingleStep(qr_config.SIZE_STEP)
        self.size_box.setValue(qr_config.SIZE)
        self.size_box.setSuffix(" px")
        self.margin_box = QSpinBox(); self.margin_box.setRange(0, 10); self.margin_box.setValue(qr_config.MARGIN)
        opts = QHBoxLayout()
        for lab, w in (("Style", self.style_box), ("EC", self.level_box), ("Size", self.size_box), ("Margin", self.margin_box)):
            opts.addWidget(QLabel(lab))
            opts.addWidget(w)
        cc.addLayout(opts)

        # Right: preview
        prev_card = Card()
        pl = QVBoxLayout(prev_card)
        pl.setContentsMargins(8, 8, 8, 8)
        pl.setSpacing(8)
        pl.addWidget(HeaderLabel("Live Preview"))

        self.preview = QLabel("Preview area")
        self.preview.setAlignment(Qt.AlignCenter)
        self.preview.setMinimumSize(280, 280)
        self.preview.setStyleSheet("border:1px dashed #3a3d44;")
        pl.addWidget(self.preview, 1)

        row = QHBoxLayout()
        self.btn_gen = QPushButton("Generate"); self.btn_gen.setObjectName("Primary")
        self.btn_save = QPushButton("Save PNG…")
        self.btn_svg = QPushButton("Save SVG…")
        self.btn_copy = QPushButton("Copy Payload")
        self.btn_copy_png = QPushButton("Copy PNG")
        self.btn_logo = QPushButton("Add Logo…")
        self.btn_logo_clear = QPushButton("Clear Logo")
        for b in (self.btn_gen, self.btn_save, self.btn_svg, self.btn_copy, self.btn_copy_png,
                  self.btn_logo, self.btn_logo_clear):
            row.addWidget(b)
        row.addStretch(1)
        self.btn_gen.clicked.connect(self.update_preview)
        self.btn_save.clicked.connect(self.save_png)
        self.btn_svg.clicked.connect(self.save_svg)
        self.btn_copy.clicked.connect(self.copy_payload)
        self.btn_copy_png.clicked.connect(self.copy_png)
        self.btn_logo.clicked.connect(self.import_logo)
        self.btn_logo_clear.clicked.connect(self.clear_logo)
        pl.addLayout(row)

        root.addWidget(type_card, 1)
        root.addWidget(self.content_card, 2)
        root.addWidget(prev_card, 3)

        self._create_inputs()
        self._rebuild_fields(0)
        self._set_actions_enabled(False)

    def _create_inputs(self):
        # url
        self.in_text = QTextEdit()
        self.in_text.setPlaceholderText("https://example.com")
        self.in_text.setMinimumHeight(120)

        # wifi
        self.wifi_ssid = QLineEdit(); self.wifi_ssid.setPlaceholderText("SSID")
        self.wifi_pass = QLineEdit(); self.wifi_pass.setPlaceholderText("Password"); self.wifi_pass.setEchoMode(QLineEdit.Password)
        self.wifi_auth = QComboBox()
        for label, sec in (("WPA/WPA2", WifiSecurity.WPA), ("WEP", WifiSecurity.WEP), ("No Password", WifiSecurity.NONE)):
            self.wifi_auth.addItem(label, sec.value)
        self.wifi_hidden = QCheckBox("Hidden network")

        # vcard
        self.vc_first = QLineEdit(); self.vc_first.setPlaceholderText("First name")
        self.vc_last = QLineEdit(); self.vc_last.setPlaceholderText("Last name")
        self.vc_org = QLineEdit(); self.vc_org.setPlaceholderText("Company")
        self.vc_phone = QLineEdit(); self.vc_phone.setPlaceholderText("Phone")
        self.vc_email = QLineEdit(); self.vc_email.setPlaceholderText("Email")
        self.vc_addr = QLineEdit(); self.vc_addr.setPlaceholderText("Address")

        # email
        self.email_to = QLineEdit(); self.email_to.setPlaceholderText("to@example.com")
        self.email_subj = QLineEdit(); self.email_subj.setPlaceholderText("Subject")
        self.email_body = QTextEdit(); self.email_body.setPlaceholderText("Body"); self.email_body.setMinimumHeight(120)

        # sms
        self.sms_phone = QLineEdit(); self.sms_phone.setPlaceholderText("Phone number")
        self.sms_msg = QTextEdit(); self.sms_msg.setPlaceholderText("Message"); self.sms_msg.setMinimumHeight(100)

        # social
        self.social_platform = QComboBox(); self.social_platform.addItems(list(SOCIAL_PROFILES))
        self.social_user = QLineEdit(); self.social_user.setPlaceholderText("Username")

        # phone
        self.tel_phone = QLineEdit(); self.tel_phone.setPlaceholderText("Phone number")

        # geo
        self.geo_lat = QLineEdit(); self.geo_lat.setPlaceholderText("Latitude, e.g. 48.8584")
        self.geo_lng = QLineEdit(); self.geo_lng.setPlaceholderText("Longitude, e.g. 2.2945")
        self.geo_label = QLineEdit(); self.geo_label.setPlaceholderText("Label (optional)")

        # event
        self.ev_title = QLineEdit(); self.ev_title.setPlaceholderText("Title")
        self.ev_loc = QLineEdit(); self.ev_loc.setPlaceholderText("Location")
        self.ev_start = QLineEdit(); self.ev_start.setPlaceholderText("Start (YYYYMMDDTHHMMSS or YYYYMMDD)")
        self.ev_end = QLineEdit(); self.ev_end.setPlaceholderText("End (YYYYMMDDTHHMMSS or YYYYMMDD)")
        self.ev_desc = QTextEdit(); self.ev_desc.setPlaceholderText("Description"); self.ev_desc.setMinimumHeight(100)

        self.field_sets = {
            PayloadKind.URL: [self.in_text],
            PayloadKind.WIFI: [self.wifi_ssid, self.wifi_pass, self.wifi_auth, self.wifi_hidden],
            PayloadKind.CONTACT: [self.vc_first, self.vc_last, self.vc_org, self.vc_phone, self.vc_email, self.vc_addr],
            PayloadKind.EMAIL: [self.email_to, self.email_subj, self.email_body],
            PayloadKind.SMS: [self.sms_phone, self.sms_msg],
            PayloadKind.SOCIAL: [self.social_platform, self.social_user],
            PayloadKind.PHONE: [self.tel_phone],
            PayloadKind.GEO: [self.geo_lat, self.geo_lng, self.geo_label],
            PayloadKind.EVENT: [self.ev_title, self.ev_loc, self.ev_start, self.ev_end, self.ev_desc],
        }

    def _watch_inputs(self):
        for widgets in self.field_sets.values():
            for w in widgets:
                if isinstance(w, (QLineEdit, QTextEdit)):
                    w.textChanged.connect(self._schedule_preview)
                elif isinstance(w, QComboBox):
                    w.currentIndexChanged.connect(self._schedule_preview)
                elif isinstance(w, QCheckBox):
                    w.toggled.connect(self._schedule_preview)
        self.style_box.currentIndexChanged.connect(self._schedule_preview)
        self.level_box.currentIndexChanged.connect(self._schedule_preview)
        self.size_box.valueChanged.connect(self._schedule_preview)
        self.margin_box.valueChanged.connect(self._schedule_preview)

    def _rebuild_fields(self, idx: int):
        # clear fields container (not the header)
        while self.fields_layout.count():
            item = self.fields_layout.takeAt(0)
            w = item.widget()
            if w:
                w.setParent(None)

        for w in self.field_sets[self.current_kind()]:
            self.fields_layout.addWidget(w)
        self.fields_layout.addStretch(1)
        self._schedule_preview()

    def _schedule_preview(self, *_):
        # timer does not exist yet during the first _build_ui pass
        timer = getattr(self, "timer", None)
        if timer is not None:
            timer.start()

    # ---- payload + render
    def current_kind(self) -> PayloadKind:
        return PAYLOAD_TYPES[max(self.type_list.currentRow(), 0)][1]

    def records(self) -> PayloadRecords:
        return PayloadRecords(
            text=self.in_text.toPlainText(),
            wifi=WifiRecord(
                ssid=self.wifi_ssid.text(),
                password=self.wifi_pass.text(),
                security=self.wifi_auth.currentData(),
                hidden=self.wifi_hidden.isChecked(),
            ),
            contact=ContactRecord(
                first_name=self.vc_first.text(),
                last_name=self.vc_last.text(),
                company=self.vc_org.text(),
                phone=self.vc_phone.text(),
                email=self.vc_email.text(),
                address=self.vc_addr.text(),
            ),
            email=EmailRecord(self.email_to.text(), self.email_subj.text(), self.email_body.toPlainText()),
            sms=SmsRecord(self.sms_phone.text(), self.sms_msg.toPlainText()),
            social=SocialRecord(self.social_platform.currentText(), self.social_user.text()),
            phone=PhoneRecord(self.tel_phone.text()),
            geo=GeoRecord(self.geo_lat.text(), self.geo_lng.text(), self.geo_label.text()),
            event=EventRecord(
                title=self.ev_title.text(),
                location=self.ev_loc.text(),
                start=self.ev_start.text(),
                end=self.ev_end.text(),
                description=self.ev_desc.toPlainText(),
            ),
        )

    def build_payload(self) -> str:
        return build(self.current_kind(), self.records())

    def render_options(self) -> RenderOptions:
        return RenderOptions.for_style(
            self.style_box.currentText(),
            error_correction=self.level_box.currentText(),
            size=self.size_box.value(),
            margin=self.margin_box.value(),
        )

    def _set_actions_enabled(self, on: bool):
        for b in (self.btn_save, self.btn_svg, self.btn_copy, self.btn_copy_png):
            b.setEnabled(on)

    def update_preview(self):
        payload = self.build_payload()
        # any earlier in-flight render is now stale
        token = self.sequencer.issue()
        if is_blank_payload(payload):
            self.preview.setText("Preview area")
            self.current_img = None
            self.current_payload = ""
            self._set_actions_enabled(False)
            return
        self.render_requested.emit(token, payload, self.render_options(), self.logo_img)
        self.current_payload = payload

    @Slot(int, object, str)
    def _on_rendered(self, token, img, err):
        if not self.sequencer.is_current(token):
            return
        if err:
            self.current_img = None
            self._set_actions_enabled(False)
            self.preview.setText("Generation failed")
            self.status_cb(f"QR error: {err}")
            return
        self.current_img = img
        self.preview.setPixmap(
            pil_to_qpixmap(img).scaled(self.preview.size(), Qt.KeepAspectRatio, Qt.SmoothTransformation)
        )
        self._set_actions_enabled(True)

    def save_png(self):
        if not self.current_img:
            return
        path, _ = QFileDialog.getSaveFileName(self, "Save QR", export_filename("png"), IMAGE_FILTERS)
        if not path:
            return
        try:
            path = save_image(self.current_img, path)
            self.status_cb(f"Saved {path}")
        except (OSError, ValueError) as e:
            logger.warning("Save image failed: %s", e)
            QMessageBox.warning(self, "Save Image", f"Failed to save: {e}")
            self.status_cb(f"Save error: {e}")

    def save_svg(self):
        if is_blank_payload(self.current_payload):
            return
        path, _ = QFileDialog.getSaveFileName(self, "Save QR", export_filename("svg"), "SVG (*.svg);;All Files (*)")
        if not path:
            return
        try:
            data = render_svg(self.current_payload, self.render_options())
            with open(path, "wb") as fh:
                fh.write(data)
            self.status_cb(f"Saved {path}")
        except (SymbolError, OSError, ValueError) as e:
            logger.warning("Save SVG failed: %s", e)
            QMessageBox.warning(self, "Save SVG", f"Failed to save: {e}")
            self.status_cb(f"Save error: {e}")

    def copy_png(self):
        if not self.current_img:
            return
        QApplication.clipboard().setImage(ImageQt.ImageQt(self.current_img))
        self.status_cb("Copied image")

    def copy_payload(self):
        payload = self.build_payload()
        if payload:
            QApplication.clipboard().setText(payload)
            self.status_cb("Copied payload")

    def import_logo(self):
        path, _ = QFileDialog.getOpenFileName(self, "Select Logo", "", IMAGE_FILTERS)
        if not path:
            return
        try:
            with Image.open(path) as logo:
                self.logo_img = logo.convert("RGBA")
            self.status_cb("Logo added")
            self.update_preview()
        except OSError as e:
            logger.warning("Logo load failed: %s", e)
            QMessageBox.warning(self, "Logo", f"Failed to load: {e}")
            self.status_cb(f"Logo load failed: {e}")

    def clear_logo(self):
        self.logo_img = None
        self.update_preview()

    def shutdown(self):
        self.render_thread.quit()
        self.render_thread.wait()


# ---------------- Scan Tab ----------------
class ScanTab(QWidget):
    def __init__(self, status_cb):
        super().__init__()
        self.status_cb = status_cb
        self.cap: cv2.VideoCapture | None = None
        self.dispatcher = Dispatcher(QtEffects(self), PlatformCapabilities.detect())
        self.timer = QTimer(self)
        self.timer.setInterval(33)  # ~30 fps
        self.timer.timeout.connect(self._on_frame)

        self.open_thread: QThread | None = None
        self.cam_worker: CameraOpener | None = None

        self.recent = RecentFilter(qr_config.DUP_WINDOW)

        self._build_ui()

    def _build_ui(self):
        root = QVBoxLayout(self)
        root.setContentsMargins(8, 8, 8, 8)
        root.setSpacing(12)

        cam = Card()
        cl = QVBoxLayout(cam)
        cl.setContentsMargins(8, 8, 8, 8)
        cl.setSpacing(8)

        cl.addWidget(HeaderLabel("Camera Feed"))

        self.video = QLabel("Camera off")
        self.video.setAlignment(Qt.AlignCenter)
        self.video.setMinimumHeight(240)
        self.video.setStyleSheet("border:1px dashed #3a3d44;")
        cl.addWidget(self.video, 1)

        row = QHBoxLayout()
        self.btn_upload = QPushButton("Upload Image"); self.btn_upload.clicked.connect(self.upload_image)
        self.btn_start = QPushButton("Start Camera"); self.btn_start.setObjectName("Primary"); self.btn_start.clicked.connect(self.toggle_camera)
        row.addWidget(self.btn_upload)
        row.addWidget(self.btn_start)
        row.addStretch(1)
        cl.addLayout(row)

        results = Card()
        rl = QVBoxLayout(results)
        rl.setContentsMargins(8, 8, 8, 8)
        rl.setSpacing(8)
        rl.addWidget(HeaderLabel("Results (double-click to open)"))

        self.table = QTableWidget(0, 3)
        self.table.setHorizontalHeaderLabels(["Time", "Content", "Type"])
        self.table.verticalHeader().setVisible(False)
        self.table.horizontalHeader().setSectionResizeMode(0, QHeaderView.ResizeToContents)
        self.table.horizontalHeader().setSectionResizeMode(1, QHeaderView.Stretch)
        self.table.horizontalHeader().setSectionResizeMode(2, QHeaderView.ResizeToContents)
        self.table.cellDoubleClicked.connect(self._on_row_activated)
        rl.addWidget(self.table)

        root.addWidget(cam, 2)
        root.addWidget(results, 1)

    # Camera control
    def toggle_camera(self):
        if self.cap:
            self._stop_camera()
            return

        self.btn_start.setEnabled(False)
        self.btn_start.setText("Starting…")

        self.open_thread = QThread(self)
        self.cam_worker = CameraOpener(0)
        self.cam_worker.moveToThread(self.open_thread)
        self.cam_worker.opened.connect(self._on_camera_opened)
        self.open_thread.started.connect(self.cam_worker.run)
        self.open_thread.start()

    def _on_camera_opened(self, cap, err):
        try:
            if err or cap is None:
                QMessageBox.warning(self, "Camera", err or "Failed to start camera")
                self.btn_start.setEnabled(True)
                self.btn_start.setText("Start Camera")
                return

            self.cap = cap
            self.timer.start()
            self.btn_start.setEnabled(True)
            self.btn_start.setText("Stop Camera")
            self.status_cb("Camera started")
        finally:
            if self.cam_worker:
                self.cam_worker.deleteLater()
            if self.open_thread:
                self.open_thread.quit()
                self.open_thread.wait()
                self.open_thread = None
            self.cam_worker = None

    def _stop_camera(self):
        self.timer.stop()
        if self.cap:
            self.cap.release()
        self.cap = None
        self.video.setText("Camera off")
        self.btn_start.setText("Start Camera")
        self.status_cb("Camera stopped")

    def _on_frame(self):
        if not self.cap:
            return
        ok, frame = self.cap.read()
        if not ok:
            return
        self.decode_frame(frame)
        qimg = cv_to_qimage(frame)
        self.video.setPixmap(QPixmap.fromImage(qimg).scaled(self.video.size(), Qt.KeepAspectRatio, Qt.SmoothTransformation))

    def upload_image(self):
        path, _ = QFileDialog.getOpenFileName(self, "Open Image", "", IMAGE_FILTERS)
        if not path:
            return
        try:
            img = load_image(path)
        except SymbolError as e:
            logger.warning("Open image failed: %s", e)
            QMessageBox.warning(self, "Open Image", f"Failed to open image: {e}")
            return

        found = self.decode_frame(img)
        qimg = cv_to_qimage(img)
        self.video.setPixmap(
            QPixmap.fromImage(qimg).scaled(self.video.size(), Qt.KeepAspectRatio, Qt.SmoothTransformation)
        )
        if not found:
            self.status_cb("No QR code found")
            QMessageBox.information(self, "Scan", "No QR code found in this image.")
            return
        # one upload, one action
        self.act_on(found[0])

    def decode_frame(self, frame) -> list[str]:
        """Decode + debounce; new results go to the top of the table."""
        try:
            data_list = read_all(frame)
        except SymbolError as e:
            logger.warning("Decode error: %s", e)
            self.status_cb(f"Decode error: {e}")
            return []
        for s in self.recent.fresh(data_list):
            self.add_result(s)
        return data_list

    def add_result(self, content: str):
        row = 0
        self.table.insertRow(row)
        self.table.setItem(row, 0, QTableWidgetItem(datetime.now().strftime("%H:%M:%S")))
        self.table.setItem(row, 1, QTableWidgetItem(content))
        self.table.setItem(row, 2, QTableWidgetItem(LABELS[classify(content)]))
        self.status_cb("QR decoded")

    def _on_row_activated(self, row: int, _col: int):
        item = self.table.item(row, 1)
        if item:
            self.act_on(item.text())

    def act_on(self, content: str):
        outcome = self.dispatcher.dispatch(classify(content), content)
        if not outcome.ok:
            self.status_cb(f"Could not open {LABELS[outcome.kind]}: {outcome.detail}")
        else:
            self.status_cb(f"{LABELS[outcome.kind]}: {outcome.action}")


# ---------------- About Tab ----------------
ABOUT_SECTIONS = (
    ("Generate", "URL, Wi-Fi, vCard, email, SMS, social, phone, location and event payloads"),
    ("Scan", "Camera or image upload; double-click a result to act on it"),
    ("Actions", "Wi-Fi details, mail/SMS/phone handlers, vCard and .ics downloads, maps, links"),
    ("Shortcuts", "Ctrl+S Save PNG, Ctrl+Shift+C Copy Payload, Ctrl+Q Quit, F1 About"),
)


class AboutTab(QWidget):
    def __init__(self):
        super().__init__()
        root = QVBoxLayout(self)
        root.setContentsMargins(40, 40, 40, 40)
        root.setSpacing(16)

        icon = QLabel(); icon.setAlignment(Qt.AlignCenter)
        try:
            img = render_image("QR Studio", RenderOptions.for_style("gradient", size=120, margin=2))
            icon.setPixmap(pil_to_qpixmap(img))
        except (SymbolError, ValueError) as e:
            logger.warning("About icon not rendered: %s", e)
        title = QLabel("QR Studio v2.0.0"); title.setAlignment(Qt.AlignCenter)
        title.setStyleSheet("font-size:16pt; font-weight:600; color:white;")
        root.addWidget(icon)
        root.addWidget(title)

        info = Card(); il = QVBoxLayout(info)
        il.setContentsMargins(12, 12, 12, 12)
        for head, text in ABOUT_SECTIONS:
            il.addWidget(HeaderLabel(head))
            val = QLabel(text); val.setWordWrap(True)
            il.addWidget(val)
        root.addWidget(info)
        root.addStretch(1)


# ---------------- Main ----------------
class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("QR Studio")
        self.resize(1200, 760)
        self.setMinimumSize(900, 600)

        self.tabs = QTabWidget(); self.setCentralWidget(self.tabs)
        self.statusbar = QStatusBar(); self.setStatusBar(self.statusbar)

        self.gen = GenerateTab(self.status)
        self.scan = ScanTab(self.status)

        self.tabs.addTab(self.gen, "Generate")
        self.tabs.addTab(self.scan, "Scan")
        self.tabs.addTab(AboutTab(), "About")

        # stop camera when leaving Scan tab
        self.tabs.currentChanged.connect(self._on_tab_changed)

        self.setStyleSheet(STYLESHEET)
        self._shortcuts()

    def _on_tab_changed(self, idx: int):
        if idx != 1 and self.scan.cap:
            self.scan._stop_camera()

    def status(self, msg: str):
        self.statusbar.showMessage(msg, 3000)

    def _shortcuts(self):
        act_save = QAction(self); act_save.setShortcut(QKeySequence.Save)
        act_save.triggered.connect(self.gen.save_png); self.addAction(act_save)
        # avoid clobbering text field copy; use Ctrl+Shift+C for payload
        act_copy = QAction(self); act_copy.setShortcut(QKeySequence("Ctrl+Shift+C"))
        act_copy.triggered.connect(self.gen.copy_payload); self.addAction(act_copy)
        act_quit = QAction(self); act_quit.setShortcut(QKeySequence.Quit)
        act_quit.triggered.connect(QApplication.quit); self.addAction(act_quit)
        act_about = QAction(self); act_about.setShortcut(QKeySequence("F1"))
        act_about.triggered.connect(lambda: self.tabs.setCurrentIndex(2)); self.addAction(act_about)

    def closeEvent(self, e):
        if self.scan.cap:
            self.scan._stop_camera()
        self.gen.shutdown()
        super().closeEvent(e)


def main() -> int:
    qr_config.configure_logging()
    app = QApplication(sys.argv)
    app.setFont(QFont("Tahoma", 10))
    win = MainWindow()
    win.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
