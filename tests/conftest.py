"""Shared test fixtures for the invoice OCR test suite."""

import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

SAMPLE_INVOICE_TEXT = """电子发票（增值税专用发票）
发票号码：24442000000123456789
开票日期：2026年3月5日
购买方信息 名称：深圳市示例科技有限公司
统一社会信用代码/纳税人识别号：91440300MA5ABCDE1X
销售方信息 名称：广州市样本贸易有限公司
统一社会信用代码/纳税人识别号：91440101MA5FGHIJ2Y
项目名称 规格型号 单位 数量 单价 金额 税率/征收率 税额
*办公用品*打印纸 2 50.00 100.00 6% 6.00
*办公用品*签字笔 10 2.00 20.00 6% 1.20
合 计 ¥120.00 ¥7.20
价税合计（大写） 壹佰贰拾柒圆贰角 （小写）¥127.20
"""

SAMPLE_INVOICE_MARKDOWN = """# 增值税电子普通发票

发票代码：044001900111
发票号码：12345678
开票日期：2026年01月15日

| 购买方信息 | 名称：北京示例有限公司 |
| --- | --- |
| 销售方信息 | 名称：上海样本服务有限公司 |
| 销售方 | 纳税人识别号：91310000MA1FL0000X |

价税合计（大写）壹佰零陆圆 （小写）¥106.00
"""


def make_png_bytes(width: int = 200, height: int = 100) -> bytes:
    """Create a minimal PNG image as bytes."""
    img = Image.fromarray(np.full((height, width, 3), 255, dtype=np.uint8))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def invoice_text() -> str:
    """Recognized text of a complete VAT invoice."""
    return SAMPLE_INVOICE_TEXT


@pytest.fixture
def invoice_markdown() -> str:
    """Layout-parser markdown of a VAT invoice."""
    return SAMPLE_INVOICE_MARKDOWN


@pytest.fixture
def png_bytes() -> bytes:
    """Encoded PNG image."""
    return make_png_bytes()


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a simple synthetic grayscale test image."""
    image = np.zeros((200, 300), dtype=np.uint8)
    image[50:150, 50:250] = 255
    return image


@pytest.fixture
def sample_color_image() -> np.ndarray:
    """Create a simple synthetic RGB test image."""
    image = np.zeros((200, 300, 3), dtype=np.uint8)
    image[50:150, 50:250] = (255, 255, 255)
    return image


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
