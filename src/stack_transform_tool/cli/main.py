"""
CLI主模块
"""

import argparse
import logging
import sys
from .commands import ApplyCommand, CallTreeCommand, InspectCommand


def _add_common_arguments(parser: argparse.ArgumentParser):
    parser.add_argument('file', help='profile JSON 文件路径 (支持 .json.gz)')
    parser.add_argument('--thread-index', type=int, default=0, help='要处理的线程下标 (默认: 0)')
    parser.add_argument('--transforms', default='',
                        help='transform 栈字符串，多个 transform 用 "~" 分隔\n'
                             '示例: "f-combined-0w2~mf-5~cr-js-3-120"')
    parser.add_argument('--default-category', type=int, default=None,
                        help='分类冲突时使用的默认分类下标 (默认: meta.defaultCategory 或名为 Other 的分类)')


def parse_arguments(argv=None):
    """解析命令行参数"""
    parser = argparse.ArgumentParser(
        description="Stack Transform Tool - 对 profile 线程的调用栈应用 transform 并查看调用树",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例用法:
  # 聚焦到调用节点路径 [0, 1, 2]，然后合并函数 5
  stack-transform-tool apply profile.json --transforms "f-combined-012~mf-5" --output out.json

  # 丢弃包含函数 7 的样本后输出调用树，并打印 markdown 表格
  stack-transform-tool calltree profile.json --transforms "df-7" --max-depth 3 --print-markdown

  # 只输出 XLSX 格式
  stack-transform-tool calltree profile.json --output-format xlsx --output-dir results

  # 解码 transform 字符串，并结合线程显示每一项的标签
  stack-transform-tool inspect "f-js-xFFpUMl-i~rec-js-325" --thread profile.json
        """
    )
    parser.add_argument('--verbose', action='store_true', help='输出详细日志 (默认: False)')

    subparsers = parser.add_subparsers(dest='command', help='可用命令')

    # apply 命令 - 应用 transform 并输出新的 profile
    apply_parser = subparsers.add_parser('apply', help='应用 transform 并输出新的 profile JSON')
    _add_common_arguments(apply_parser)
    apply_parser.add_argument('--output', default=None, help='输出文件路径 (默认: <输入文件名>.transformed.json)')
    apply_parser.add_argument('--output-dir', default='.', help='未指定 --output 时的输出目录 (默认: 当前目录)')

    # calltree 命令 - 输出调用树
    calltree_parser = subparsers.add_parser('calltree', help='应用 transform 后输出调用树')
    _add_common_arguments(calltree_parser)
    calltree_parser.add_argument('--max-depth', type=int, default=None, help='最大展开深度 (默认: 不限制)')
    calltree_parser.add_argument('--print-markdown', action='store_true',
                                 help='是否在stdout中以markdown格式打印表格 (默认: False)')
    calltree_parser.add_argument('--output-format', default='json',
                                 help='输出格式，多个用逗号分隔: json,xlsx (默认: json)')
    calltree_parser.add_argument('--output-dir', default='.', help='输出目录 (默认: 当前目录)')

    # inspect 命令 - 解码 transform 字符串
    inspect_parser = subparsers.add_parser('inspect', help='解码 transform 字符串')
    inspect_parser.add_argument('transforms', help='transform 栈字符串')
    inspect_parser.add_argument('--thread', default=None, help='可选的 profile JSON，用于显示函数名')
    inspect_parser.add_argument('--thread-index', type=int, default=0, help='线程下标 (默认: 0)')

    return parser.parse_args(argv)


def main(argv=None):
    """主函数"""
    args = parse_arguments(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    if not args.command:
        print("错误: 请指定命令 (apply, calltree, inspect)")
        print("使用 --help 查看帮助信息")
        return 1

    if args.command == 'apply':
        command = ApplyCommand()
    elif args.command == 'calltree':
        command = CallTreeCommand()
    elif args.command == 'inspect':
        command = InspectCommand()
    else:
        print(f"错误: 未知命令: {args.command}")
        return 1
    return command.run(args)


if __name__ == "__main__":
    sys.exit(main())
