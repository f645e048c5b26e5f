"""
Tests for BeautifulSoup extraction helpers.
"""


PRODUCT_HTML = """
<div class="product">
  <h1 class="title">  Sky High
     Maskara </h1>
  <div class="brand">Maybelline <span>New York</span></div>
  <div class="desc"><p>Uzun kirpikler</p></div>
  <div class="empty">   </div>
  <img class="pic" data-src="/img/1.jpg">
  <img class="pic" src="/img/2.jpg" data-src="/img/2-lazy.jpg">
  <a class="link" href="/urun/krem-p-10045">Krem</a>
  <a class="link" href="/urun/krem-p-10045">Krem (tekrar)</a>
  <a class="link" href="#">Boş</a>
  <a class="link" href="https://cdn.example.com/x">CDN</a>
  <ol class="crumbs"><li>Anasayfa</li><li>Makyaj</li><li>Göz</li><li>Sky High Maskara</li></ol>
  <table>
    <tr><th>Marka</th><td>Maybelline</td></tr>
    <tr><th>Hacim</th><td>7,2 ml</td></tr>
    <tr><th>Boş</th></tr>
  </table>
</div>
"""


class TestTextAndAttributes:
    """Test text, attribute and HTML selection."""

    def test_select_text(self, make_soup):
        from scrapers.utils.extractors import select_text

        soup = make_soup(PRODUCT_HTML)
        assert select_text(soup, '.title') == 'Sky High Maskara'
        assert select_text(soup, '.missing') is None
        assert select_text(soup, '.empty') is None

    def test_select_attr_fallback_order(self, make_soup):
        from scrapers.utils.extractors import select_attr, select_all_attr

        soup = make_soup(PRODUCT_HTML)
        assert select_attr(soup, '.pic', 'src', 'data-src') == '/img/1.jpg'
        assert select_all_attr(soup, '.pic', 'src', 'data-src') == ['/img/1.jpg', '/img/2.jpg']

    def test_inner_html(self, make_soup):
        from scrapers.utils.extractors import inner_html

        soup = make_soup(PRODUCT_HTML)
        assert inner_html(soup, '.desc') == '<p>Uzun kirpikler</p>'
        assert inner_html(soup, '.missing') is None

    def test_own_text(self, make_soup):
        from scrapers.utils.extractors import own_text

        soup = make_soup(PRODUCT_HTML)
        assert own_text(soup.select_one('.brand')) == 'Maybelline'
        assert own_text(None) is None


class TestLinksAndStructures:
    """Test links, breadcrumbs, spec tables and ids."""

    def test_absolute_url(self):
        from scrapers.utils.extractors import absolute_url

        assert absolute_url('/urun/krem-p-1', 'https://www.gratis.com') == 'https://www.gratis.com/urun/krem-p-1'
        assert absolute_url('https://a.com/x', 'https://b.com') == 'https://a.com/x'
        assert absolute_url('#', 'https://b.com') is None
        assert absolute_url('javascript:void(0)', 'https://b.com') is None
        assert absolute_url(None, 'https://b.com') is None

    def test_extract_links_unique(self, make_soup):
        from scrapers.utils.extractors import extract_links

        soup = make_soup(PRODUCT_HTML)
        links = extract_links(soup, '.link', 'https://www.gratis.com')
        assert links == ['https://www.gratis.com/urun/krem-p-10045', 'https://cdn.example.com/x']

        only_products = extract_links(soup, '.link', 'https://www.gratis.com', contains='-p-')
        assert only_products == ['https://www.gratis.com/urun/krem-p-10045']

    def test_extract_breadcrumbs(self, make_soup):
        from scrapers.utils.extractors import extract_breadcrumbs

        soup = make_soup(PRODUCT_HTML)
        crumbs = extract_breadcrumbs(soup, '.crumbs li', exclude=['Anasayfa'], drop_last=True)
        assert crumbs == ['Makyaj', 'Göz']

    def test_extract_table_specs(self, make_soup):
        from scrapers.utils.extractors import extract_table_specs

        soup = make_soup(PRODUCT_HTML)
        assert extract_table_specs(soup, 'tr') == [
            {'name': 'Marka', 'value': 'Maybelline'},
            {'name': 'Hacim', 'value': '7,2 ml'},
        ]

    def test_extract_id_and_query_param(self):
        from scrapers.utils.extractors import extract_id, query_param

        assert extract_id(r'-p-(\d+)$', 'https://www.gratis.com/krem-p-10045') == '10045'
        assert extract_id(r'-p-(\d+)$', 'https://www.gratis.com/krem') is None
        assert query_param('https://www.farmasi.com.tr/urun?pid=1000123&x=1', 'pid') == '1000123'
        assert query_param('https://www.farmasi.com.tr/urun', 'pid') is None


class TestLinkCollector:
    """Test unique link collection across scroll rounds."""

    def test_keeps_discovery_order(self):
        from scrapers.listing import LinkCollector

        found = LinkCollector()
        assert found.add(['https://x.com/a', 'https://x.com/b', 'https://x.com/a']) == ['https://x.com/a', 'https://x.com/b']
        assert found.add(['https://x.com/b', 'https://x.com/c']) == ['https://x.com/c']

        assert found.urls == ['https://x.com/a', 'https://x.com/b', 'https://x.com/c']
        assert len(found) == 3
        assert 'https://x.com/b' in found
