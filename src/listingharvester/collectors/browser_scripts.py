"""In-page JavaScript used by the browser extraction path.

Each script is a function expression evaluated with ``page.evaluate``.
The only argument that crosses into the page is the source tag; the only
thing that comes back is a list of plain objects with the same field
names ``normalize.build_listing`` understands (``id``, ``url``, ``title``,
``price``, ``location``, ``size``, ``bedrooms``, ``property_type``,
``transaction``, ``floor``, ``images``). Values are raw text: all parsing
happens in Python so both paths normalize identically.
"""

from ..models.source import SourceId

# Shared helpers prepended to every extraction script
_HELPERS = r"""
  const seen = new Set();
  const text = (el) => (el && el.textContent ? el.textContent.replace(/\s+/g, ' ').trim() : '');
  const firstText = (root, selectors) => {
    for (const selector of selectors) {
      for (const el of root.querySelectorAll(selector)) {
        const value = text(el);
        if (value) return value;
      }
    }
    return '';
  };
  const match = (value, pattern) => {
    const m = value.match(pattern);
    return m ? m[0].trim() : '';
  };
  const priceText = (value) =>
    match(value, /€\s*\d[\d.,\s]*?\s*\/\s*(?:sq\.?\s?m\.?|m²|m2|τ\.?μ\.?)/i) ||
    match(value, /€\s*\d[\d.,]*/) ||
    match(value, /\d[\d.,]*\s*€/);
  const sizeText = (value) =>
    match(value, /(\d{1,3}(?:\.\d{3})+(?![\d,])|\d+(?:[.,]\d+)?)\s*(?:m²|m2|τ\.?\s?μ\.?|sq\.?\s?m\.?|sqm)/i);
  const bedroomText = (value) =>
    match(value, /(\d+)\s*(?:bedrooms?|beds?|bdr|rooms?|υπν\S*|δωμ\S*|υ\/δ)/i);
  const images = (root) => {
    const found = [];
    root.querySelectorAll('img, source').forEach((el) => {
      let src = el.getAttribute('src') || el.getAttribute('data-src') ||
        el.getAttribute('data-lazy-src') || el.getAttribute('data-original');
      if (!src && el.getAttribute('srcset')) {
        src = el.getAttribute('srcset').split(',')[0].trim().split(' ')[0];
      }
      if (src) found.push(src);
    });
    root.querySelectorAll('[style*="background-image"]').forEach((el) => {
      const m = (el.getAttribute('style') || '').match(/background-image:\s*url\(['"]?([^'")\s]+)['"]?\)/);
      if (m) found.push(m[1]);
    });
    return found;
  };
"""


def _script(body: str) -> str:
    return "(source) => {" + _HELPERS + body + "\n}"


TOSPITIMOU_SCRIPT = _script(r"""
  const results = [];
  const cards = document.querySelectorAll('.search-result[id^="result-row_"], [data-targeturl*="/property/"]');
  cards.forEach((card) => {
    const target = (card.getAttribute('data-targeturl') || '').trim();
    const rowId = (card.getAttribute('id') || '').replace('result-row_', '');
    const idMatch = target.match(/\/property\/(\d+)/);
    const id = rowId || (idMatch ? idMatch[1] : '');
    if (!id || seen.has(id)) return;
    seen.add(id);

    const full = text(card);
    results.push({
      id,
      url: target,
      title: firstText(card, ['.searchResultsH2 a', 'h2 a', 'h2']).replace(/\b(?:VIP|NEW|REDUCED)\b/gi, '').trim(),
      price: priceText(full),
      size: sizeText(full),
      bedrooms: bedroomText(full),
      location: firstText(card, ['[class*="location"]', '[class*="address"]', '[class*="area"]']),
      transaction: (full.includes('/month') || full.includes('ανά μήνα')) ? 'rent' : '',
      floor: match(full, /\d+(?:st|nd|rd|th)\s*floor|(?:floor|όροφος)[:\s]*\d+|ground\s*floor|ισόγειο|υπόγειο/i),
      images: images(card),
    });
  });
  return results;
""")

XE_GR_SCRIPT = _script(r"""
  const results = [];
  const selectors = [
    '[data-testid="property-card"]',
    '[data-property-id]',
    'article[class*="PropertyCard"]',
    'div[class*="ResultCard"]',
    'a[href*="/property/d/"]',
  ];
  for (const selector of selectors) {
    const elements = document.querySelectorAll(selector);
    if (!elements.length) continue;
    elements.forEach((el) => {
      const link = el.tagName === 'A' ? el : el.querySelector('a[href*="/property/d/"]');
      if (!link) return;
      const href = link.getAttribute('href') || '';
      const idMatch = href.match(/\/property\/d\/(\d+)/);
      const id = el.getAttribute('data-property-id') || (idMatch ? idMatch[1] : '');
      if (!id || seen.has(id)) return;
      seen.add(id);

      const container = el.closest('article, div[class*="Card"]') || el;
      const full = text(container);
      results.push({
        id,
        url: href,
        title: firstText(container, ['h2', 'h3', '[class*="title"]', '[class*="Title"]']) || link.getAttribute('title') || '',
        price: priceText(full),
        size: sizeText(full),
        bedrooms: bedroomText(full),
        location: firstText(container, ['[class*="location"]', '[class*="Location"]', '[class*="address"]']),
        images: images(container),
      });
    });
    break;
  }
  return results;
""")

SPITOGATOS_SCRIPT = _script(r"""
  const results = [];
  const selectors = [
    '[data-testid="property-card"]',
    'article[class*="PropertyCard"]',
    'div[class*="ResultItem"]',
    '.property-card',
    'a[href*="/aggelies/"]',
  ];
  for (const selector of selectors) {
    const elements = document.querySelectorAll(selector);
    if (!elements.length) continue;
    elements.forEach((el) => {
      const link = el.tagName === 'A' ? el : el.querySelector('a[href*="/aggelies/"], a[href*="/property/"]');
      if (!link) return;
      const href = link.getAttribute('href') || '';
      const idMatch = href.match(/\/aggelies\/(\d+)|\/property\/(\d+)/);
      const id = idMatch ? (idMatch[1] || idMatch[2]) : '';
      if (!id || seen.has(id)) return;
      seen.add(id);

      const container = el.closest('article, div[class*="Card"]') || el;
      const full = text(container);
      results.push({
        id,
        url: href,
        title: firstText(container, ['[data-testid="title"]', 'h2', 'h3', '[class*="title"]']),
        price: priceText(full),
        size: sizeText(full),
        bedrooms: bedroomText(full),
        location: firstText(container, ['[data-testid="location"]', '[class*="location"]', '[class*="area"]']),
        images: images(container),
      });
    });
    break;
  }
  return results;
""")

# Used when the source script finds nothing
GENERIC_LINK_SCRIPT = _script(r"""
  const results = [];
  document.querySelectorAll('a[href*="/property/"], a[href*="/aggelies/"]').forEach((anchor) => {
    const href = anchor.getAttribute('href') || '';
    if (href.includes('/search') || href.includes('/filter')) return;
    const idMatch = href.match(/\/property\/(?:d\/)?(\d+)|\/aggelies\/(\d+)/);
    const id = idMatch ? (idMatch[1] || idMatch[2]) : '';
    if (!id || seen.has(id)) return;
    seen.add(id);

    const container = anchor.closest('.search-result, .card, article, div[class*="Card"]') ||
      (anchor.parentElement && anchor.parentElement.parentElement) || anchor;
    const full = text(container);
    results.push({
      id,
      url: href,
      title: text(anchor),
      price: priceText(full),
      size: sizeText(full),
      bedrooms: bedroomText(full),
      images: images(container),
    });
  });
  return results;
""")

EXTRACTION_SCRIPTS: dict[SourceId, str] = {
    SourceId.TOSPITIMOU: TOSPITIMOU_SCRIPT,
    SourceId.XE_GR: XE_GR_SCRIPT,
    SourceId.SPITOGATOS: SPITOGATOS_SCRIPT,
}

NEXT_PAGE_SCRIPT = r"""() => {
  const selectors = [
    'a[rel="next"]',
    '[aria-label="Next"]',
    '[aria-label="Επόμενη"]',
    'button[class*="next"]:not(:disabled)',
    'a[class*="next"]:not(.disabled)',
    '.pagination a[class*="next"]',
    '[class*="pagination"] [class*="next"]',
  ];
  for (const selector of selectors) {
    try {
      const el = document.querySelector(selector);
      if (el && !el.classList.contains('disabled') && el.getAttribute('aria-disabled') !== 'true') {
        return true;
      }
    } catch (e) {
      continue;
    }
  }
  return false;
}"""

NO_RESULTS_SCRIPT = r"""(selectors) => {
  for (const selector of selectors) {
    try {
      if (document.querySelector(selector)) return true;
    } catch (e) {
      continue;
    }
  }
  return false;
}"""

# Tried in order; the first three are also tried inside frames
CONSENT_SELECTORS = (
    'button:has-text("AGREE")',
    'button:has-text("Accept")',
    'button:has-text("Accept all")',
    'button:has-text("Αποδοχή")',
    'button:has-text("OK")',
    ".qc-cmp2-summary-buttons button:first-child",
    '[class*="consent"] button[mode="primary"]',
    'button[class*="accept"]',
    "#onetrust-accept-btn-handler",
    '[data-testid="cookie-policy-dialog-accept-button"]',
)
FRAME_CONSENT_SELECTORS = CONSENT_SELECTORS[:3]

# Waited on in order until one appears; the source's first card hint goes second
LISTING_WAIT_SELECTORS = (
    'a[href*="/property/"]',
    '[class*="listing"]',
    '[class*="property-card"]',
)
